import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, Optional

import aiofiles
import aiofiles.os
import structlog

from ..core.deadline import Deadline, within_settled
from ..core.errors import (
    FileCreateError,
    FileDeleteError,
    FileMissingError,
    FileModifyError,
    InvalidHandleError,
)
from ..core.models import ActivityKind, CorrelationContext, FileAction
from ..utils.logging import log_outcome


class FileLifecycleDriver:
    """Creates, modifies and deletes files, logging each step"""

    def __init__(self, context: CorrelationContext, logger: Optional[Any] = None):
        self.context = context
        self.log = (logger or structlog.get_logger(__name__)).bind(
            **context.log_fields(), activity=ActivityKind.FILE.value
        )

    def _action_log(self, action: FileAction, path: str) -> Any:
        return self.log.bind(file_activity=action.value, file_path=path)

    async def create_file(self, path: str) -> Any:
        """Create (or truncate) the file at path and return a writable handle"""
        abs_path = os.path.abspath(path)
        log = self._action_log(FileAction.CREATE, abs_path)
        try:
            handle = await aiofiles.open(abs_path, "wb")
        except (OSError, ValueError) as e:
            log_outcome(log, e, "create file")
            raise FileCreateError(f"unable to create file {abs_path!r}: {e}") from e
        log_outcome(log, None, "create file")
        return handle

    async def modify_file(
        self, handle: Any, data: bytes, deadline: Optional[Deadline] = None
    ) -> int:
        """Append data to the open file, bounded by deadline when given"""
        if handle is None:
            raise InvalidHandleError("error attempting to modify nil file")
        abs_path = os.path.abspath(handle.name)

        written = 0
        error: Optional[BaseException] = None
        try:
            written = await within_settled(deadline, handle.write(data))
            await within_settled(deadline, handle.flush())
        except (OSError, ValueError, asyncio.TimeoutError) as e:
            error = e
        log = self._action_log(FileAction.MODIFY, abs_path).bind(bytes_written=written)
        log_outcome(log, error, "modify file")
        if error is not None:
            raise FileModifyError(f"error attempting to modify file {abs_path!r}") from error
        return written

    async def delete_file(self, path: str) -> None:
        abs_path = os.path.abspath(path)
        log = self._action_log(FileAction.DELETE, abs_path)
        try:
            await aiofiles.os.remove(abs_path)
        except FileNotFoundError as e:
            log_outcome(log, e, "delete file")
            raise FileMissingError(f"file does not exist: {abs_path!r}") from e
        except OSError as e:
            log_outcome(log, e, "delete file")
            raise FileDeleteError(f"error attempting to delete file {abs_path!r}: {e}") from e
        log_outcome(log, None, "delete file")

    async def close_file(self, handle: Any) -> None:
        abs_path = os.path.abspath(handle.name)
        try:
            await handle.close()
        except OSError as e:
            log_outcome(self.log.bind(file_path=abs_path), e, "close file")
            raise FileModifyError(f"unable to close file {abs_path!r}: {e}") from e

    @asynccontextmanager
    async def managed_file(self, path: str) -> AsyncIterator[Any]:
        """
        Create the file at path for the duration of the block.

        On exit the handle is closed and the file deleted, whether or not the
        block raised. An error from the block takes precedence; cleanup
        failures are then only logged. Otherwise a close or delete failure is
        raised.
        """
        handle = await self.create_file(path)
        abs_path = os.path.abspath(handle.name)
        try:
            yield handle
        except BaseException:
            await self._release(handle, abs_path, raise_errors=False)
            raise
        await self._release(handle, abs_path, raise_errors=True)

    async def _release(self, handle: Any, abs_path: str, raise_errors: bool) -> None:
        first_error: Optional[BaseException] = None
        try:
            await self.close_file(handle)
        except FileModifyError as e:
            first_error = e
        try:
            await self.delete_file(abs_path)
        except FileDeleteError as e:
            first_error = first_error or e
        if raise_errors and first_error is not None:
            raise first_error

    async def manage_file(
        self, path: str, data: bytes, deadline: Optional[Deadline] = None
    ) -> str:
        """Create, modify and delete the file at path; returns its absolute path"""
        async with self.managed_file(path) as handle:
            await self.modify_file(handle, data, deadline=deadline)
        return os.path.abspath(path)
