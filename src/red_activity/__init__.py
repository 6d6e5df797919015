from typing import Any

__version__ = "1.0.0"
__description__ = "Synthetic process, file and network activity with correlated logging"

from .core.errors import ActivityError, SetupError
from .core.models import (
    ActivityKind,
    ActivitySettings,
    CorrelationContext,
    FileAction,
    Outcome,
    RunReport,
    RunState,
    TransmitResult,
)

__all__ = [
    "__version__",
    "__description__",
    "ActivityError",
    "SetupError",
    "ActivityKind",
    "ActivitySettings",
    "CorrelationContext",
    "FileAction",
    "Outcome",
    "RunReport",
    "RunState",
    "TransmitResult",
    # Lazy imports available via functions
    "get_activity_generator",
    "get_orchestrator",
]


def get_activity_generator() -> Any:
    """Get ActivityGenerator class (lazy import)"""
    from .core.generator import ActivityGenerator

    return ActivityGenerator


def get_orchestrator() -> Any:
    """Get ActivityOrchestrator class (lazy import)"""
    from .core.orchestrator import ActivityOrchestrator

    return ActivityOrchestrator
