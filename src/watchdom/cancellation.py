"""
Cooperative cancellation for a polling session.

Signal handlers call ``cancel()``; the scheduler checks the token at its
suspension points. Sleeping on the token wakes up as soon as it is
cancelled.
"""

import asyncio


class CancellationToken:
    """Cancellation flag backed by an ``asyncio.Event``."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no effect."""
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for ``seconds`` or until cancelled.

        Returns:
            True if the token was cancelled before or during the sleep
        """
        if self._event.is_set():
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
