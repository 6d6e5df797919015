import yaml
from typer.testing import CliRunner

from red_activity import __version__
from red_activity.cli import app

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_context():
    result = runner.invoke(app, ["context"])

    assert result.exit_code == 0
    assert "username" in result.output
    assert "process_id" in result.output


def test_create_and_validate_config(tmp_path):
    path = tmp_path / "config.yaml"

    created = runner.invoke(app, ["create-config", "--output", str(path)])
    assert created.exit_code == 0
    assert path.exists()

    again = runner.invoke(app, ["create-config", "--output", str(path)])
    assert again.exit_code == 1
    assert "already exists" in again.output

    validated = runner.invoke(app, ["validate-config", "--config", str(path)])
    assert validated.exit_code == 0
    assert "Configuration is valid" in validated.output


def test_validate_invalid_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"logging": {"format": "xml"}}))

    result = runner.invoke(app, ["validate-config", "--config", str(path)])

    assert result.exit_code == 1
    assert "Invalid logging.format" in result.output


def test_run_success(tmp_path):
    result = runner.invoke(
        app,
        [
            "run",
            "--directory", str(tmp_path),
            "--extension", ".txt",
            "--process", "true",
            "--timeout", "10",
            "--log-format", "console",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "activity run completed" in result.output
    assert list(tmp_path.iterdir()) == []


def test_run_with_tokenized_arguments(tmp_path):
    result = runner.invoke(
        app,
        ["run", "--directory", str(tmp_path), "--process", "sh", "--args", "-c 'exit 4'"],
    )

    assert result.exit_code == 0, result.output


def test_run_failure_names_stage(tmp_path):
    result = runner.invoke(
        app,
        ["run", "--directory", str(tmp_path), "--process", str(tmp_path / "missing")],
    )

    assert result.exit_code == 1
    assert "running_process" in result.output


def test_run_missing_config(tmp_path):
    result = runner.invoke(app, ["run", "--config", str(tmp_path / "absent.yaml")])

    assert result.exit_code == 1
    assert "Configuration Error" in result.output


def test_run_bad_arguments(tmp_path):
    result = runner.invoke(
        app, ["run", "--directory", str(tmp_path), "--args", "'unterminated"]
    )

    assert result.exit_code == 1
    assert "Invalid arguments" in result.output


def test_run_rejects_unknown_log_format(tmp_path):
    result = runner.invoke(
        app, ["run", "--directory", str(tmp_path), "--log-format", "xml"]
    )

    assert result.exit_code == 1
    assert "Invalid --log-format" in result.output


def test_run_rejects_unknown_log_level(tmp_path):
    result = runner.invoke(
        app, ["run", "--directory", str(tmp_path), "--log-level", "loud"]
    )

    assert result.exit_code == 1
    assert "Invalid --log-level" in result.output
