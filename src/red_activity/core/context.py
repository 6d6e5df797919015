import os
import pwd
import sys
from collections.abc import Sequence
from typing import Callable, Optional

import structlog

from .errors import SetupError
from .models import CorrelationContext

logger = structlog.get_logger(__name__)


def current_username() -> str:
    """Name of the real user running this process"""
    return pwd.getpwuid(os.getuid()).pw_name


def capture_context(
    argv: Optional[Sequence[str]] = None,
    resolve_user: Optional[Callable[[], str]] = None,
) -> CorrelationContext:
    """
    Capture actor and process identity once for a run.

    Args:
        argv: Argument vector to report. Defaults to sys.argv.
        resolve_user: Callable returning the actor name. Defaults to the
            password database entry of the real uid.

    Raises:
        SetupError: If the current user cannot be resolved.
    """
    resolve_user = resolve_user or current_username
    try:
        username = resolve_user()
    except (KeyError, OSError) as e:
        raise SetupError(f"unable to get user information: {e}") from e

    argv = list(sys.argv if argv is None else argv)
    context = CorrelationContext(
        actor_name=username,
        process_name=argv[0] if argv else "",
        # Arguments containing spaces are not quoted
        command_line=" ".join(argv),
        process_id=os.getpid(),
    )
    logger.debug("Correlation context captured", **context.log_fields())
    return context
