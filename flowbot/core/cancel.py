"""Request-scoped cancellation token (explicit cancel + deadline)."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, TypeVar

from flowbot.core.errors import Canceled

T = TypeVar("T")


class CancelToken:
    """Carries explicit cancellation and an optional deadline for one request.

    The pipeline calls :meth:`raise_if_cancelled` at every step boundary and
    wraps provider / runtime calls in :meth:`run`, which cancels the in-flight
    coroutine as soon as the token fires or the deadline passes.

    ``cancel()`` must be called from the event loop thread.
    """

    def __init__(self, timeout: float | None = None):
        self._event = asyncio.Event()
        self._reason = "canceled"
        self._deadline = time.monotonic() + timeout if timeout else None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set() or self._expired()

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self, reason: str = "canceled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def remaining(self) -> float | None:
        """Seconds left before the deadline, ``None`` when there is none."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Canceled(self._reason)
        if self._expired():
            raise Canceled("deadline exceeded")

    async def run(self, aw: Awaitable[T]) -> T:
        """Await ``aw`` unless the token fires first."""
        self.raise_if_cancelled()
        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, waiter},
                timeout=self.remaining(),
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            waiter.cancel()
            if not task.done():
                task.cancel()
                await asyncio.wait({task})
        if task in done:
            return task.result()
        self.raise_if_cancelled()
        raise Canceled("deadline exceeded")

    def _expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline
