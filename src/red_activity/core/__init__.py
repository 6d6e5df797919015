from typing import Any

from .deadline import Deadline
from .errors import (
    ActivityError,
    DialError,
    ExecutableNotFoundError,
    ExecutablePermissionError,
    FileCreateError,
    FileDeleteError,
    FileMissingError,
    FileModifyError,
    InvalidHandleError,
    InvalidPayloadError,
    ListenError,
    ProcessStartError,
    ProcessWaitError,
    SetupError,
    TransmitError,
)
from .models import (
    ActivityKind,
    ActivitySettings,
    CorrelationContext,
    FileAction,
    Outcome,
    RunReport,
    RunState,
    TransmitResult,
)

# Generator and orchestrator imports are delayed; they pull in the drivers,
# which import back into this package
__all__ = [
    "Deadline",
    "ActivityError",
    "SetupError",
    "ProcessStartError",
    "ExecutableNotFoundError",
    "ExecutablePermissionError",
    "ProcessWaitError",
    "FileCreateError",
    "FileModifyError",
    "FileDeleteError",
    "FileMissingError",
    "InvalidHandleError",
    "ListenError",
    "DialError",
    "TransmitError",
    "InvalidPayloadError",
    "ActivityKind",
    "ActivitySettings",
    "CorrelationContext",
    "FileAction",
    "Outcome",
    "RunReport",
    "RunState",
    "TransmitResult",
    "get_orchestrator",
]


def get_orchestrator() -> Any:
    """Get ActivityOrchestrator class (lazy import to avoid circular dependency)"""
    from .orchestrator import ActivityOrchestrator

    return ActivityOrchestrator
