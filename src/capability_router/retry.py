"""
retry.py — Exponential back-off policy for upstream calls.

The policy is plain data (attempt count, base delay, jitter bound and a
retryable predicate) so it can be exercised without a network or real time:
``sleep`` and ``jitter`` are injectable.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TypeVar

from .config import Settings
from .errors import RequestError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """429 / 5xx / timeout-class failures are worth another attempt."""
    return isinstance(exc, RequestError) and exc.retryable


@dataclass
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    max_jitter: float = 0.5
    retryable: Callable[[BaseException], bool] = is_retryable
    sleep: Callable[[float], Awaitable[Any]] = field(default=asyncio.sleep, repr=False)
    jitter: Callable[[float, float], float] = field(default=random.uniform, repr=False)

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_attempts=max(1, settings.max_retries),
            base_delay=settings.retry_base_delay,
            max_jitter=settings.retry_max_jitter,
        )

    def delay_for(self, attempt: int) -> float:
        """Delay after failed attempt ``attempt`` (0-indexed)."""
        return 2**attempt * self.base_delay + self.jitter(0, self.max_jitter)

    async def run(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Call ``fn`` until it succeeds, fails terminally, or attempts run out."""
        for attempt in range(self.max_attempts):
            try:
                return await fn()
            except Exception as exc:
                if not self.retryable(exc) or attempt + 1 >= self.max_attempts:
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    "Retry %d/%d after %.0fms (%s)",
                    attempt + 1,
                    self.max_attempts,
                    delay * 1000,
                    exc,
                )
                await self.sleep(delay)
        raise RuntimeError("RetryPolicy.max_attempts must be at least 1")
