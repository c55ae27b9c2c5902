from __future__ import annotations

import asyncio

import pytest

from pool_yield_lab.core import HttpStatusError, MalformedUpstream, SourceUnavailable
from pool_yield_lab.sources import RetryPolicy, is_retryable


class Recorder:
    def __init__(self) -> None:
        self.sleeps: list[float] = []

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)


def _flaky(errors: list[Exception], result: object = "ok"):
    calls = {"n": 0}

    async def func() -> object:
        calls["n"] += 1
        if errors:
            raise errors.pop(0)
        return result

    return func, calls


@pytest.mark.parametrize(
    ("exc", "expected"),
    [
        (HttpStatusError("rate limited", status=429), True),
        (HttpStatusError("bad gateway", status=502), True),
        (HttpStatusError("not found", status=404), False),
        (MalformedUpstream("no field"), False),
        (SourceUnavailable("down"), True),
        (asyncio.TimeoutError(), True),
        (ValueError("bug"), False),
    ],
)
def test_is_retryable(exc: Exception, expected: bool) -> None:
    assert is_retryable(exc) is expected


def test_retries_until_success_with_backoff() -> None:
    recorder = Recorder()
    policy = RetryPolicy(max_attempts=3, backoff=0.5, sleep=recorder.sleep)
    func, calls = _flaky([HttpStatusError("x", status=503), HttpStatusError("x", status=429)])

    assert asyncio.run(policy.run(func)) == "ok"
    assert calls["n"] == 3
    assert recorder.sleeps == [0.5, 1.0]


def test_exhausted_budget_raises_source_unavailable() -> None:
    recorder = Recorder()
    policy = RetryPolicy(max_attempts=2, sleep=recorder.sleep)
    func, calls = _flaky([SourceUnavailable("down")] * 5)

    with pytest.raises(SourceUnavailable, match="after 2 attempts") as excinfo:
        asyncio.run(policy.run(func, description="GET prices"))
    assert calls["n"] == 2
    assert isinstance(excinfo.value.__cause__, SourceUnavailable)


def test_non_retryable_error_propagates_immediately() -> None:
    recorder = Recorder()
    func, calls = _flaky([MalformedUpstream("no height")])
    with pytest.raises(MalformedUpstream):
        asyncio.run(RetryPolicy(sleep=recorder.sleep).run(func))
    assert calls["n"] == 1
    assert recorder.sleeps == []


def test_delay_is_capped() -> None:
    assert RetryPolicy(backoff=1.0, max_delay=3.0).delay(5) == 3.0
