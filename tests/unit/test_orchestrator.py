import asyncio
import socket

import pytest
from structlog.testing import capture_logs

from red_activity.core.errors import SetupError
from red_activity.core.models import ActivitySettings, RunState
from red_activity.core.orchestrator import ActivityOrchestrator

# Fields expected to differ between otherwise identical runs
VOLATILE_FIELDS = {
    "file_path",
    "timestamp",
    "process_id",
    "child_pid",
    "source_address",
    "destination_address",
}


@pytest.fixture
def settings(tmp_path):
    return ActivitySettings(directory=str(tmp_path), extension=".txt", process_path="true")


def run_orchestrator(settings, correlation_context):
    orchestrator = ActivityOrchestrator(settings, context_factory=lambda: correlation_context)
    report = asyncio.run(orchestrator.run())
    return orchestrator, report


def test_end_to_end(settings, correlation_context, tmp_path, activity_events):
    with capture_logs() as entries:
        orchestrator, report = run_orchestrator(settings, correlation_context)

    assert report.success
    assert report.state is RunState.DONE
    assert report.failed_stage is None
    assert report.process_exit_code == 0
    assert report.file_path.startswith(str(tmp_path))
    assert report.file_path.endswith(".txt")
    assert report.transmit.bytes_sent == 5
    assert orchestrator.transitions == [
        RunState.INIT,
        RunState.RUNNING_PROCESS,
        RunState.MANAGING_FILE,
        RunState.TRANSMITTING,
        RunState.DONE,
    ]
    assert list(tmp_path.iterdir()) == []

    events = activity_events(entries)
    assert [(e["event"], e["outcome"]) for e in events] == [
        ("process start", "success"),
        ("create file", "success"),
        ("modify file", "success"),
        ("delete file", "success"),
        ("data transmission", "success"),
    ]
    assert events[2]["bytes_written"] == len(b"file append")
    assert events[4]["data_sent_bytes"] == 5
    for event in events:
        assert event["username"] == correlation_context.actor_name
        assert event["process_name"] == correlation_context.process_name
        assert event["process_command_line"] == correlation_context.command_line
        assert event["process_id"] == correlation_context.process_id


def test_repeated_runs_are_structurally_identical(settings, correlation_context, activity_events):
    def structure(entries):
        return [
            {key: value for key, value in event.items() if key not in VOLATILE_FIELDS}
            for event in activity_events(entries)
        ]

    with capture_logs() as first:
        _, first_report = run_orchestrator(settings, correlation_context)
    with capture_logs() as second:
        _, second_report = run_orchestrator(settings, correlation_context)

    assert first_report.success and second_report.success
    assert first_report.file_path != second_report.file_path
    assert structure(first) == structure(second)


def test_setup_failure(settings, activity_events):
    def no_identity():
        raise SetupError("unable to get user information")

    orchestrator = ActivityOrchestrator(settings, context_factory=no_identity)
    with capture_logs() as entries:
        report = asyncio.run(orchestrator.run())

    assert not report.success
    assert report.state is RunState.FAILED
    assert report.failed_stage is RunState.INIT
    assert report.error_type == "SetupError"
    assert orchestrator.transitions == [RunState.INIT, RunState.FAILED]
    assert activity_events(entries) == []


def test_process_failure_stops_run(tmp_path, correlation_context, activity_events):
    settings = ActivitySettings(directory=str(tmp_path), process_path=str(tmp_path / "missing"))
    with capture_logs() as entries:
        orchestrator, report = run_orchestrator(settings, correlation_context)

    assert report.failed_stage is RunState.RUNNING_PROCESS
    assert report.error_type == "ExecutableNotFoundError"
    assert "running_process" in report.summary()
    assert activity_events(entries, "file") == []
    assert activity_events(entries, "network") == []


def test_non_zero_exit_continues(tmp_path, correlation_context):
    settings = ActivitySettings(directory=str(tmp_path), process_path="false")
    _, report = run_orchestrator(settings, correlation_context)

    assert report.success
    assert report.process_exit_code == 1


def test_file_failure_stops_run(tmp_path, correlation_context, activity_events):
    settings = ActivitySettings(directory=str(tmp_path / "missing"))
    with capture_logs() as entries:
        orchestrator, report = run_orchestrator(settings, correlation_context)

    assert report.failed_stage is RunState.MANAGING_FILE
    assert report.error_type == "FileCreateError"
    assert isinstance(orchestrator.last_error, Exception)
    assert activity_events(entries, "network") == []


def test_transmit_failure(settings, correlation_context, monkeypatch):
    def refuse(*args, **kwargs):
        raise OSError("no loopback available")

    monkeypatch.setattr(socket, "create_server", refuse)
    orchestrator, report = run_orchestrator(settings, correlation_context)

    assert report.failed_stage is RunState.TRANSMITTING
    assert report.error_type == "ListenError"
    assert orchestrator.transitions[-2:] == [RunState.TRANSMITTING, RunState.FAILED]


def test_overall_deadline(tmp_path, correlation_context):
    settings = ActivitySettings(
        directory=str(tmp_path),
        process_path="sleep",
        process_args=["30"],
        timeout_seconds=0.3,
    )
    _, report = run_orchestrator(settings, correlation_context)

    assert report.failed_stage is RunState.RUNNING_PROCESS
    assert report.error_type == "ProcessWaitError"
    assert report.elapsed_seconds < 10


def test_orchestrator_runs_once(settings, correlation_context):
    orchestrator, _ = run_orchestrator(settings, correlation_context)

    with pytest.raises(RuntimeError):
        asyncio.run(orchestrator.run())


def test_process_path_with_null_byte_fails_stage(tmp_path, correlation_context):
    settings = ActivitySettings(directory=str(tmp_path), process_path="tr\x00ue")
    orchestrator, report = run_orchestrator(settings, correlation_context)

    assert report.state is RunState.FAILED
    assert report.failed_stage is RunState.RUNNING_PROCESS
    assert report.error_type == "ProcessStartError"
    assert orchestrator.transitions[-1] is RunState.FAILED


def test_directory_with_null_byte_fails_stage(tmp_path, correlation_context):
    settings = ActivitySettings(directory=str(tmp_path) + "\x00x")
    _, report = run_orchestrator(settings, correlation_context)

    assert report.state is RunState.FAILED
    assert report.failed_stage is RunState.MANAGING_FILE
    assert report.error_type == "FileCreateError"
