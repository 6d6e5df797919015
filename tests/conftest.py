import logging
import os

import pytest
import structlog

from red_activity.core.deadline import Deadline
from red_activity.core.models import CorrelationContext


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any structlog / stdlib logging configuration done by a test"""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def correlation_context():
    """Fixed correlation context for testing"""
    return CorrelationContext(
        actor_name="tester",
        process_name="red-activity",
        command_line="red-activity run --extension .txt",
        process_id=os.getpid(),
    )


@pytest.fixture
def deadline():
    return Deadline.after(10)


@pytest.fixture
def config(tmp_path):
    """Test configuration"""
    return {
        "activity": {
            "directory": str(tmp_path),
            "extension": ".txt",
            "process_path": "true",
            "process_args": [],
            "timeout_seconds": 10,
        },
        "logging": {"level": "DEBUG", "format": "console"},
    }


@pytest.fixture
def activity_events():
    """Filter captured log entries down to those produced by activity drivers"""

    def _filter(entries, kind=None):
        events = [entry for entry in entries if "activity" in entry]
        if kind is not None:
            events = [entry for entry in events if entry["activity"] == kind]
        return events

    return _filter
