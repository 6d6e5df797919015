import asyncio
import time
from collections.abc import Awaitable
from typing import Optional, TypeVar

T = TypeVar("T")


class Deadline:
    """A point on the monotonic clock after which blocking calls give up"""

    def __init__(self, expires_at: float):
        self.expires_at = expires_at

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0

    def __repr__(self) -> str:
        return f"Deadline(remaining={self.remaining():.3f}s)"


async def within(deadline: Optional[Deadline], aw: Awaitable[T]) -> T:
    """Await aw, raising asyncio.TimeoutError once the deadline passes"""
    if deadline is None:
        return await aw
    return await asyncio.wait_for(aw, deadline.remaining())


async def within_settled(deadline: Optional[Deadline], aw: Awaitable[T]) -> T:
    """
    Like within, but on timeout let aw run to completion before raising.

    For work handed to an executor thread, which cancelling the awaiting
    task does not stop.
    """
    if deadline is None:
        return await aw
    task = asyncio.ensure_future(aw)
    try:
        return await asyncio.wait_for(asyncio.shield(task), deadline.remaining())
    except asyncio.TimeoutError:
        await asyncio.gather(task, return_exceptions=True)
        raise
