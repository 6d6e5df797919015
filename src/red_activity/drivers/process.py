import asyncio
from collections.abc import Sequence
from typing import Any, Optional

import structlog

from ..core.deadline import Deadline, within
from ..core.errors import (
    ExecutableNotFoundError,
    ExecutablePermissionError,
    ProcessStartError,
    ProcessWaitError,
)
from ..core.models import ActivityKind, CorrelationContext
from ..utils.logging import log_outcome


class ProcessDriver:
    """Runs external executables and logs their start"""

    def __init__(self, context: CorrelationContext, logger: Optional[Any] = None):
        self.context = context
        self.log = (logger or structlog.get_logger(__name__)).bind(
            **context.log_fields(), activity=ActivityKind.PROCESS.value
        )

    async def run_process(
        self,
        path: str,
        args: Optional[Sequence[str]] = None,
        deadline: Optional[Deadline] = None,
    ) -> int:
        """
        Run the executable at path and wait for it to exit.

        Standard output and error are inherited from this process. A non-zero
        exit status is returned, not raised.

        Raises:
            ProcessStartError: The process could not be started.
            ProcessWaitError: The deadline passed before the process exited.
        """
        args = list(args or [])
        log = self.log.bind(executable=path, arguments=args)

        try:
            proc = await asyncio.create_subprocess_exec(path, *args)
        except (OSError, ValueError, TypeError) as e:
            log_outcome(log, e, "process start")
            raise self._start_error(path, e) from e
        log_outcome(log.bind(child_pid=proc.pid), None, "process start")

        try:
            return await within(deadline, proc.wait())
        except asyncio.TimeoutError as e:
            await self._terminate(proc)
            log_outcome(log.bind(child_pid=proc.pid), e, "process wait")
            raise ProcessWaitError(
                f"deadline exceeded waiting for {path!r} (pid {proc.pid})"
            ) from e
        except asyncio.CancelledError as e:
            await self._terminate(proc)
            log_outcome(log.bind(child_pid=proc.pid), e, "process wait")
            raise

    @staticmethod
    def _start_error(path: str, error: Exception) -> ProcessStartError:
        if isinstance(error, FileNotFoundError):
            return ExecutableNotFoundError(f"executable not found: {path!r}")
        if isinstance(error, PermissionError):
            return ExecutablePermissionError(f"permission denied executing {path!r}")
        return ProcessStartError(f"error starting command {path!r}: {error}")

    @staticmethod
    async def _terminate(proc: asyncio.subprocess.Process) -> None:
        if proc.returncode is None:
            try:
                proc.kill()
            except ProcessLookupError:
                pass
        await proc.wait()
