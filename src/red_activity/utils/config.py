import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog
import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from ..core.models import ActivitySettings

logger = structlog.get_logger(__name__)

# Load environment variables from .env file
load_dotenv()

CONFIG_ENV_VAR = "RED_ACTIVITY_CONFIG"
LOG_LEVEL_ENV_VAR = "RED_ACTIVITY_LOG_LEVEL"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
VALID_LOG_FORMATS = ("json", "console")


class ConfigurationError(Exception):
    """Custom exception for configuration errors"""

    pass


def get_default_config_path() -> Optional[str]:
    """Resolve the config file to use, or None to run on built-in defaults"""
    # Priority 1: Environment variable
    env_config = os.getenv(CONFIG_ENV_VAR)
    if env_config and Path(env_config).exists():
        logger.info("Using config from environment variable", path=env_config)
        return env_config
    elif env_config:
        logger.warning(
            "Config path from environment variable does not exist", path=env_config
        )

    # Priority 2: Project config directory
    project_config = "config/config.yaml"
    if Path(project_config).exists():
        logger.info("Using project config", path=project_config)
        return project_config

    # Priority 3: Current directory
    current_config = "config.yaml"
    if Path(current_config).exists():
        logger.info("Using current directory config", path=current_config)
        return current_config

    logger.info("No config found, using built-in defaults")
    return None


def validate_config_structure(config_data: dict[str, Any]) -> list[str]:
    """
    Validate the configuration structure and return list of errors
    """
    errors = []

    for section in ("activity", "logging"):
        if section in config_data and not isinstance(config_data[section], dict):
            errors.append(f"Section {section} must be a mapping")

    activity_config = config_data.get("activity") or {}
    if isinstance(activity_config, dict):
        timeout = activity_config.get("timeout_seconds", 10)
        if isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0:
            errors.append(f"Invalid timeout_seconds: {timeout} (should be > 0)")

        process_args = activity_config.get("process_args", [])
        if not isinstance(process_args, list):
            errors.append("activity.process_args must be a list of strings")

        directory = activity_config.get("directory")
        if directory is not None and not Path(str(directory)).is_dir():
            errors.append(f"activity.directory does not exist: {directory}")

    logging_config = config_data.get("logging") or {}
    if isinstance(logging_config, dict):
        level = str(logging_config.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            errors.append(f"Invalid logging.level: {level}")

        log_format = str(logging_config.get("format", "json")).lower()
        if log_format not in VALID_LOG_FORMATS:
            errors.append(f"Invalid logging.format: {log_format} (json or console)")

    return errors


def load_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load configuration with error handling and validation

    Args:
        config_path: Optional path to config file. If None, uses default
            resolution and falls back to built-in defaults.

    Returns:
        Dictionary containing configuration data

    Raises:
        ConfigurationError: If config cannot be loaded or is invalid
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_data: dict[str, Any] = {}
    if config_path is not None:
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(
                f"Config file {config_path} not found. "
                f"Create one with: red-activity create-config --output {config_path}"
            )

        try:
            with open(config_file, encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in config file {config_path}: {e}")
        except OSError as e:
            raise ConfigurationError(f"Error reading config file {config_path}: {e}")

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")

        logger.info(
            "Configuration loaded successfully",
            path=str(config_file),
            sections=list(config_data.keys()),
        )

    validation_errors = validate_config_structure(config_data)
    if validation_errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(
            f"  • {error}" for error in validation_errors
        )
        raise ConfigurationError(error_msg)

    config_data = apply_config_defaults(config_data)

    # Override log level from environment
    env_level = os.getenv(LOG_LEVEL_ENV_VAR)
    if env_level:
        config_data["logging"]["level"] = env_level.upper()

    return config_data


def apply_config_defaults(config_data: dict[str, Any]) -> dict[str, Any]:
    """Apply default values for missing optional configuration settings"""

    activity_defaults: dict[str, Any] = {
        "directory": tempfile.gettempdir(),
        "extension": "",
        "process_path": "true",
        "process_args": [],
        "file_payload": "file append",
        "network_payload": "hello",
        "timeout_seconds": 10,
    }

    if not config_data.get("activity"):
        config_data["activity"] = {}

    for key, default_value in activity_defaults.items():
        if key not in config_data["activity"]:
            config_data["activity"][key] = default_value

    logging_defaults: dict[str, Any] = {
        "level": "INFO",
        "file": None,
        "format": "json",
    }

    if not config_data.get("logging"):
        config_data["logging"] = {}

    for key, default_value in logging_defaults.items():
        if key not in config_data["logging"]:
            config_data["logging"][key] = default_value

    return config_data


def build_settings(
    config_data: dict[str, Any], **overrides: Any
) -> ActivitySettings:
    """Build run settings from the activity section; None overrides are ignored"""
    values = dict(config_data.get("activity", {}))
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return ActivitySettings(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid activity settings: {e}") from e


def create_example_config(output_path: str) -> bool:
    """Create an example configuration file"""

    example_config = {
        "activity": {
            "directory": tempfile.gettempdir(),
            "extension": ".txt",
            "process_path": "true",
            "process_args": [],
            "file_payload": "file append",
            "network_payload": "hello",
            "timeout_seconds": 10,
        },
        "logging": {
            "level": "INFO",
            "file": None,
            "format": "json",
        },
    }

    try:
        with open(output_path, "w", encoding="utf-8") as f:
            yaml.dump(example_config, f, default_flow_style=False, sort_keys=False)

        logger.info("Example configuration created", path=output_path)
        return True

    except OSError as e:
        logger.error(
            "Failed to create example configuration", path=output_path, error=str(e)
        )
        return False
