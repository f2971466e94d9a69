"""Concurrency control utilities for async operations."""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, TypeVar

from webharvest.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class ConcurrencyLimiter:
    """Cap the number of coroutines running inside the limiter at once."""

    max_concurrent: int
    _semaphore: asyncio.Semaphore = field(init=False)
    _running: int = field(default=0)

    def __post_init__(self):
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be >= 1")
        self._semaphore = asyncio.Semaphore(self.max_concurrent)

    async def acquire(self) -> None:
        """Acquire a slot."""
        await self._semaphore.acquire()
        self._running += 1

    def release(self) -> None:
        """Release a slot."""
        self._semaphore.release()
        self._running -= 1

    async def __aenter__(self):
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.release()

    @property
    def running(self) -> int:
        """Get number of running tasks."""
        return self._running


class RateLimitExceededError(RuntimeError):
    """Raised when the per-minute request quota is exhausted."""

    def __init__(self, retry_after_s: float) -> None:
        self.retry_after_s = max(0.0, retry_after_s)
        super().__init__(
            f"Rate limit exceeded. Please wait {math.ceil(self.retry_after_s)} seconds."
        )


@dataclass(frozen=True)
class GovernorStatus:
    """Snapshot of the governor counters."""

    request_count: int
    max_requests: int
    reset_in_s: float
    running: int


class RequestGovernor:
    """Rolling per-minute request quota plus a concurrent-execution cap.

    The counter resets on a fixed interval measured from the last reset. A call made while the
    quota is exhausted is rejected immediately; it is never queued or retried here.
    """

    def __init__(
        self,
        max_requests_per_minute: int = 10,
        max_concurrent: int = 5,
        *,
        interval_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the governor.

        Args:
            max_requests_per_minute: Requests admitted per interval.
            max_concurrent: Maximum admitted calls executing at once.
            interval_s: Length of the counting window.
            clock: Monotonic time source (injectable for tests).
        """
        if max_requests_per_minute < 1:
            raise ValueError("max_requests_per_minute must be >= 1")
        self.max_requests = max_requests_per_minute
        self.interval_s = interval_s
        self._clock = clock
        self._limiter = ConcurrencyLimiter(max_concurrent)
        self._request_count = 0
        self._last_reset = clock()

    def _roll(self, now: float) -> None:
        if now - self._last_reset >= self.interval_s:
            self._request_count = 0
            self._last_reset = now

    def admit(self) -> None:
        """Count one request against the quota or raise :class:`RateLimitExceededError`."""

        now = self._clock()
        self._roll(now)
        if self._request_count >= self.max_requests:
            wait_s = self.interval_s - (now - self._last_reset)
            logger.warning(
                "Rate limit exceeded",
                extra={"request_count": self._request_count, "retry_after_s": round(wait_s, 1)},
            )
            raise RateLimitExceededError(wait_s)
        self._request_count += 1

    async def execute(self, func: Callable[[], Awaitable[T]]) -> T:
        """Admit and run ``func`` within the concurrency cap."""

        self.admit()
        async with self._limiter:
            return await func()

    def status(self) -> GovernorStatus:
        now = self._clock()
        self._roll(now)
        return GovernorStatus(
            request_count=self._request_count,
            max_requests=self.max_requests,
            reset_in_s=max(0.0, self.interval_s - (now - self._last_reset)),
            running=self._limiter.running,
        )
