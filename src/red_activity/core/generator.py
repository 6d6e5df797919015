from typing import Any, Optional

import structlog

from ..drivers.files import FileLifecycleDriver
from ..drivers.network import LoopbackTransport
from ..drivers.process import ProcessDriver
from .context import capture_context
from .models import CorrelationContext


class ActivityGenerator:
    """
    Generates process, file and network activity.

    The correlation context is captured once here and shared by every
    driver, so all events of one generator carry the same identity fields.
    """

    def __init__(
        self,
        logger: Optional[Any] = None,
        context: Optional[CorrelationContext] = None,
    ):
        # capture_context raises SetupError when the user cannot be resolved
        self.context = context if context is not None else capture_context()
        self.logger = logger or structlog.get_logger("red_activity")

        self.processes = ProcessDriver(self.context, self.logger)
        self.files = FileLifecycleDriver(self.context, self.logger)
        self.network = LoopbackTransport(self.context, self.logger)

    # Shortcuts to the driver operations
    async def run_process(self, *args: Any, **kwargs: Any) -> int:
        return await self.processes.run_process(*args, **kwargs)

    async def manage_file(self, *args: Any, **kwargs: Any) -> str:
        return await self.files.manage_file(*args, **kwargs)

    async def localhost_transmit(self, *args: Any, **kwargs: Any) -> Any:
        return await self.network.localhost_transmit(*args, **kwargs)
