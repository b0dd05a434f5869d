"""First-write-wins completion cell bound to an asyncio event loop.

Several producers may race to resolve the cell; the first value set wins
and every later attempt is a silent no-op. The cell is confined to its loop
thread; producers on other threads hand their attempts over with
loop.call_soon_threadsafe, so no lock is involved.
"""

from __future__ import annotations

import asyncio
from typing import Generic, TypeVar

T = TypeVar("T")


class CompletionCell(Generic[T]):
    """A one-shot result slot with try-set semantics."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()
        self._future: asyncio.Future[T] = self._loop.create_future()

    def done(self) -> bool:
        return self._future.done()

    def try_set(self, value: T) -> bool:
        """Resolve the cell if it is still empty. Must run on the loop thread.

        Returns:
            True if this call resolved the cell, False if it was already set.
        """
        if self._future.done():
            return False
        self._future.set_result(value)
        return True

    async def wait(self) -> T:
        """Wait for the first value. Cancelling the waiter leaves the cell intact."""
        return await asyncio.shield(self._future)

    def result(self) -> T:
        return self._future.result()
