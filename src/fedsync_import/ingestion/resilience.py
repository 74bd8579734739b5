"""
Resilience utilities for content-store calls: retries with backoff and
per-call timeouts.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from fedsync_import.errors import ImportTimeoutError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    backoff_mode: str = "exp"  # exp | fixed | none
    base_delay_s: float = 1.0
    max_delay_s: float = 30.0
    jitter: float = 0.0
    retry_on_status: tuple[int, ...] = (408, 429, 500, 502, 503, 504)

    @classmethod
    def from_settings(cls, settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.RETRY_ATTEMPTS,
            base_delay_s=settings.RETRY_DELAY_MS / 1000.0,
        )

    def compute_backoff_s(self, attempt: int) -> float:
        """
        attempt: 1..N
        """
        if self.backoff_mode == "none":
            return 0.0
        if self.backoff_mode == "fixed":
            delay = self.base_delay_s
        else:
            delay = self.base_delay_s * (2 ** max(0, attempt - 1))

        delay = min(delay, self.max_delay_s)
        if self.jitter > 0:
            delay = delay * (1.0 + (random.random() * 2 - 1) * self.jitter)  # +- jitter
        return max(0.0, delay)

    def should_retry_status(self, status_code: int | None) -> bool:
        return status_code is not None and status_code in self.retry_on_status


async def retry_async(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` until it succeeds or a non-retryable error occurs."""
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1
            if attempt > policy.max_retries or not is_retryable(e):
                raise
            delay = policy.compute_backoff_s(attempt)
            logger.warning(
                f"{description} failed (attempt {attempt}/{policy.max_retries}), "
                f"retrying in {delay:.2f}s: {e}"
            )
            await sleep(delay)


async def with_timeout(
    awaitable: Awaitable[T], timeout_s: float | None, *, description: str = "operation"
) -> T:
    """Await with a deadline, converting expiry into ImportTimeoutError."""
    if timeout_s is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_s)
    except asyncio.TimeoutError as e:
        raise ImportTimeoutError(
            f"{description} timed out after {timeout_s}s",
            details={"timeout_s": timeout_s},
        ) from e
