import logging
import sys
from pathlib import Path
from typing import Any, Optional

import structlog
from structlog.stdlib import LoggerFactory

from ..core.models import Outcome


def setup_logging(config: dict[str, Any]) -> None:
    logging_config = config.get("logging", {})
    log_level = str(logging_config.get("level", "INFO")).upper()
    log_file: Optional[str] = logging_config.get("file")
    log_format = logging_config.get("format", "json")
    level = getattr(logging, log_level, logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file:
        # Ensure log directory exists and is writable
        try:
            Path(log_file).parent.mkdir(parents=True, exist_ok=True)
            handlers.append(logging.FileHandler(log_file))
        except OSError as e:
            print(f"Warning: Cannot write to log file {log_file}: {e}")

    # Configure standard logging
    logging.basicConfig(level=level, format="%(message)s", handlers=handlers, force=True)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]
    if str(log_format).lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=True,
    )


def log_outcome(log: Any, error: Optional[BaseException], message: str) -> None:
    """Log message at error level when error is set, info level otherwise"""
    if error is not None:
        log.error(message, outcome=Outcome.ERROR.value, error=str(error) or repr(error))
        return
    log.info(message, outcome=Outcome.SUCCESS.value)
