"""Bounded retry with exponential backoff for every external call site."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
import logging
from typing import TypeVar

import aiohttp

from ..core.errors import HttpStatusError, MalformedUpstream, SourceUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, timeouts, 429 and 5xx are retried; everything else is not."""

    if isinstance(exc, HttpStatusError):
        return exc.retryable
    if isinstance(exc, MalformedUpstream):
        return False
    if isinstance(exc, SourceUnavailable):
        return True
    return isinstance(exc, (aiohttp.ClientError, asyncio.TimeoutError, ConnectionError))


@dataclass(frozen=True)
class RetryPolicy:
    """At most ``max_attempts`` tries, sleeping ``backoff * 2**attempt`` (capped) in between."""

    max_attempts: int = 3
    backoff: float = 0.5
    max_delay: float = 8.0
    sleep: Callable[[float], Awaitable[None]] = field(
        default=asyncio.sleep, repr=False, compare=False
    )

    def delay(self, attempt: int) -> float:
        return min(self.backoff * 2**attempt, self.max_delay)

    async def run(self, func: Callable[[], Awaitable[T]], *, description: str = "call") -> T:
        """Await ``func()`` until it succeeds or the attempt budget is spent.

        Non-retryable errors propagate immediately. An exhausted budget is
        raised as :class:`SourceUnavailable` chained to the last error.
        """

        attempts = max(1, self.max_attempts)
        last_exc: BaseException | None = None
        for attempt in range(attempts):
            try:
                return await func()
            except Exception as exc:
                if not is_retryable(exc):
                    raise
                last_exc = exc
                if attempt + 1 >= attempts:
                    break
                wait = self.delay(attempt)
                logger.debug(
                    "%s failed (attempt %d/%d): %s; retrying in %.2fs",
                    description,
                    attempt + 1,
                    attempts,
                    exc,
                    wait,
                )
                await self.sleep(wait)
        raise SourceUnavailable(
            f"{description} failed after {attempts} attempts: {last_exc}"
        ) from last_exc


__all__ = ["RetryPolicy", "is_retryable"]
