"""Caller-driven cancellation for generation calls.

A CancelToken is threaded through every blocking operation. Cancelling it
(or letting its deadline pass) makes pending backoff sleeps and in-flight
provider calls resolve early with OperationCancelledError.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Optional, TypeVar

from glance.errors import OperationCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """Cancellation flag with an optional monotonic deadline."""

    def __init__(self, deadline: Optional[float] = None):
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False
        self.deadline = deadline
        self.reason: Optional[str] = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "CancelToken":
        return cls(deadline=time.monotonic() + seconds)

    def _get_event(self) -> asyncio.Event:
        # Created lazily so the token can be built outside a running loop.
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    def cancel(self, reason: str = "operation cancelled") -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()
        logger.debug("Cancel requested", extra={"reason": reason})

    def remaining(self) -> Optional[float]:
        """Seconds until the deadline, or None when there is none."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    @property
    def cancelled(self) -> bool:
        if self._cancelled:
            return True
        if self.deadline is not None and time.monotonic() >= self.deadline:
            self.cancel("deadline exceeded")
            return True
        return False

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self.reason or "operation cancelled", code="LLM-009")

    async def wait(self) -> None:
        """Block until the token is cancelled or its deadline passes."""
        if self.cancelled:
            return
        event = self._get_event()
        remaining = self.remaining()
        if remaining is None:
            await event.wait()
            return
        try:
            await asyncio.wait_for(event.wait(), timeout=remaining)
        except asyncio.TimeoutError:
            self.cancel("deadline exceeded")


async def run_cancellable(aw: Awaitable[T], token: Optional[CancelToken]) -> T:
    """Await ``aw`` unless ``token`` fires first.

    Raises:
        OperationCancelledError: The token fired before ``aw`` finished.
    """
    if token is None:
        return await aw
    if token.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        token.raise_if_cancelled()

    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(token.wait())
    try:
        done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except BaseException:
        task.cancel()
        waiter.cancel()
        raise

    if task in done:
        waiter.cancel()
        return task.result()

    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug("Call failed after cancellation", extra={"error": str(e)})
    token.raise_if_cancelled()
    raise OperationCancelledError("operation cancelled", code="LLM-009")


async def sleep_with_cancel(delay: float, token: Optional[CancelToken]) -> None:
    """Sleep ``delay`` seconds, waking early with OperationCancelledError if cancelled."""
    if delay <= 0:
        if token is not None:
            token.raise_if_cancelled()
        return
    await run_cancellable(asyncio.sleep(delay), token)
