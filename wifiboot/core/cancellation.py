"""
Cancellation for long-running transitions.

A CancelToken is threaded through every settle delay and retry wait so
that a stuck bootstrap or reconfiguration can be aborted, either
explicitly or by a deadline.
"""

from __future__ import annotations

import asyncio
import time

from wifiboot.core.errors import OperationCancelled


class CancelToken:
    """Cooperative cancellation flag with an optional deadline."""

    def __init__(self, timeout: float | None = None):
        self._event = asyncio.Event()
        self._reason = ""
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelled(self._reason)
        if self.expired:
            raise OperationCancelled("deadline exceeded")

    async def sleep(self, seconds: float) -> None:
        """Sleep, waking early if cancelled or when the deadline passes."""
        self.raise_if_cancelled()

        remaining = self.remaining()
        hits_deadline = remaining is not None and remaining < seconds
        timeout = remaining if hits_deadline else seconds

        if timeout > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=timeout)
            except asyncio.TimeoutError:
                pass
        else:
            await asyncio.sleep(0)

        self.raise_if_cancelled()
        if hits_deadline:
            raise OperationCancelled("deadline exceeded")


async def pause(seconds: float, cancel: CancelToken | None = None) -> None:
    """Suspension point used for every settle delay and retry interval."""
    if cancel is None:
        await asyncio.sleep(seconds)
    else:
        await cancel.sleep(seconds)
