from __future__ import annotations

import asyncio

import pytest

from fakes import NOW, FakeBlocks
from pool_yield_lab.core import InsufficientHistory, SourceUnavailable
from pool_yield_lab.sampling import RateSampler


def _reader(values: dict[int | None, int]):
    async def read(block: int | None) -> int:
        if block not in values:
            raise SourceUnavailable(f"state at {block} pruned")
        return values[block]

    return read


def test_sample_reads_now_and_each_window() -> None:
    blocks = FakeBlocks(head=1_000)
    sampler = RateSampler(blocks, windows=(1, 7), clock=lambda: NOW)
    read = _reader({None: 1_000_192, 999: 1_000_000, 993: 999_000})

    sample = asyncio.run(sampler.sample("ethereum", read, decimals=6))

    assert sample.current.value == pytest.approx(1.000192)
    assert sample.at(1).block == 999
    assert sample.at(7).value == pytest.approx(0.999)
    assert sample.at(7).timestamp == int(NOW - 7 * 86_400)
    assert sample.missing == {}
    assert sample.windows == [1, 7]


def test_failed_window_is_recorded_as_missing(caplog: pytest.LogCaptureFixture) -> None:
    sampler = RateSampler(FakeBlocks(fail={7}), windows=(1, 7), clock=lambda: NOW)
    read = _reader({None: 10, 999: 9})

    with caplog.at_level("WARNING", logger="pool_yield_lab.sampling"):
        sample = asyncio.run(sampler.sample("ethereum", read))

    assert sample.at(7) is None
    assert 7 in sample.missing
    assert any("7d window" in rec.message for rec in caplog.records)
    with pytest.raises(InsufficientHistory) as excinfo:
        sample.require(7)
    assert excinfo.value.window_days == 7


def test_pruned_historical_state_is_missing() -> None:
    sampler = RateSampler(FakeBlocks(), windows=(1,), clock=lambda: NOW)
    sample = asyncio.run(sampler.sample("ethereum", _reader({None: 10})))
    assert sample.history == {}
    assert "pruned" in sample.missing[1]


def test_failed_current_read_propagates() -> None:
    sampler = RateSampler(FakeBlocks(), windows=(1,), clock=lambda: NOW)
    with pytest.raises(SourceUnavailable):
        asyncio.run(sampler.sample("ethereum", _reader({999: 1})))


def test_reference_blocks_are_shared() -> None:
    blocks = FakeBlocks(head=500, fail={7})
    sampler = RateSampler(blocks, windows=(1, 7), clock=lambda: NOW)

    resolved = asyncio.run(sampler.reference_blocks("hyperliquid"))
    assert resolved == {1: 499, 7: None}

    read = _reader({None: 2, 499: 1})
    sample = asyncio.run(sampler.sample("hyperliquid", read, blocks=resolved))
    assert len(blocks.calls) == 2
    assert sample.at(1).raw_value == 1
    assert 7 in sample.missing
