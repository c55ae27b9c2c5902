"""Exception hierarchy for upstream and invariant failures.

Every per-pool failure is raised as one of these types and caught by the
pipeline driver, which excludes the affected pool instead of aborting the
batch.
"""

from __future__ import annotations

from collections.abc import Sequence


class PoolYieldError(Exception):
    """Base exception for all pool_yield_lab errors."""


class SourceUnavailable(PoolYieldError):
    """Upstream API, RPC or subgraph unreachable or answering with an error."""

    def __init__(self, message: str, source: str | None = None):
        super().__init__(message)
        self.source = source


class HttpStatusError(SourceUnavailable):
    """Non-success HTTP status. 429 and 5xx are retryable."""

    def __init__(self, message: str, status: int, source: str | None = None):
        super().__init__(message, source=source)
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status == 429 or self.status >= 500


class MalformedUpstream(SourceUnavailable):
    """Response parsed but a required field is missing or has the wrong shape."""


class InsufficientHistory(PoolYieldError):
    """A historical rate sample could not be obtained."""

    def __init__(self, message: str, window_days: float | None = None):
        super().__init__(message)
        self.window_days = window_days


class UnresolvedPrice(PoolYieldError):
    """A required asset price is missing from the price collaborator."""

    def __init__(self, message: str, token: str | None = None):
        super().__init__(message)
        self.token = token


class InvariantViolation(PoolYieldError):
    """A built record breaks an output invariant and must not be emitted."""

    def __init__(self, message: str, violations: Sequence[str] = ()):
        super().__init__(message)
        self.violations = list(violations)


__all__ = [
    "HttpStatusError",
    "InsufficientHistory",
    "InvariantViolation",
    "MalformedUpstream",
    "PoolYieldError",
    "SourceUnavailable",
    "UnresolvedPrice",
]
