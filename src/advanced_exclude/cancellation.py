"""Cooperative cancellation for reconciliation runs."""

import asyncio
from typing import Optional


class CancellationToken:
    """A one-way cancellation flag that coroutines check at safe points.

    Cancelling never interrupts an operation in progress; code holding the token
    checks `cancelled` before starting each unit of work and stops issuing new
    operations once it is set.

    Example:
        >>> token = CancellationToken()
        >>> token.cancelled
        False
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._event: Optional[asyncio.Event] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no further effect."""
        self._cancelled = True
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Suspend until the token is cancelled."""
        if self._cancelled:
            return
        if self._event is None:
            self._event = asyncio.Event()
        await self._event.wait()

    async def sleep(self, delay: float) -> bool:
        """Sleep for delay seconds unless cancelled first.

        Returns:
            True if the full delay elapsed, False if cancellation cut it short.
        """
        if self._cancelled:
            return False
        try:
            await asyncio.wait_for(self.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return True
        return False

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self._cancelled})"
