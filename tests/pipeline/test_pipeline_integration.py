from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

import pytest

from fakes import FakeHttp, FakePrices, FakeRegistry, make_context
from pool_yield_lab.adapters import AdapterBase, LendingMarket, LendingMarketAdapter
from pool_yield_lab.config import Settings
from pool_yield_lab.core import PoolRecord
from pool_yield_lab.pipeline import AdapterContext, Pipeline, fetch_pools
from pool_yield_lab.pipeline import context as context_module
from pool_yield_lab.sources import Opportunity, Web3Reader

URL = "https://graph.test/aave-v3"
USDC = "0x" + "a" * 40
A_USDC = "0x" + "b" * 40
DAI = "0x" + "c" * 40
A_DAI = "0x" + "d" * 40


class FailingAdapter(AdapterBase):
    project = "boom"

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        raise RuntimeError("boom")


class StaticAdapter(AdapterBase):
    project = "static"

    def __init__(self, *records: PoolRecord) -> None:
        self.records = list(records)

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        return list(self.records)


def _static(pool_id: str, tvl: float, **kwargs: object) -> PoolRecord:
    return PoolRecord(pool_id, "Ethereum", "static", "USDC", tvl, **kwargs)  # type: ignore[arg-type]


def _reserve(asset: str, a_token: str, symbol: str, available: int) -> dict:
    return {
        "underlyingAsset": asset,
        "symbol": symbol,
        "decimals": 18,
        "liquidityRate": str(3 * 10**25),
        "variableBorrowRate": str(5 * 10**25),
        "availableLiquidity": str(available * 10**18),
        "totalCurrentVariableDebt": "0",
        "aToken": {"id": a_token},
    }


@pytest.fixture
def lending_context() -> AdapterContext:
    return make_context(
        settings=Settings(subgraphs={"main": URL}, min_tvl_usd=100.0),
        http=FakeHttp(
            {
                URL: {
                    "data": {
                        "reserves": [
                            _reserve(USDC, A_USDC, "USDC", 5_000),
                            _reserve(DAI, A_DAI, "DAI", 50),
                        ]
                    }
                }
            }
        ),
        prices=FakePrices({f"ethereum:{USDC}": 1.0, f"ethereum:{DAI}": 1.0}),
        registry=FakeRegistry({A_USDC: [Opportunity(1.25, ("0xmerkl",))]}),
    )


def test_pipeline_merges_registry_rewards_and_applies_min_tvl(
    lending_context: AdapterContext,
) -> None:
    adapter = LendingMarketAdapter("aave-v3", [LendingMarket("ethereum", "main")])

    repo = Pipeline([adapter], context=lending_context).run()

    [record] = list(repo)
    assert record.pool_id == f"{A_USDC}-ethereum"
    assert record.apy_base == pytest.approx(3.0)
    assert record.apy_reward == pytest.approx(1.25)
    assert record.reward_tokens == ("0xmerkl",)


def test_pipeline_logs_and_recovers_from_adapter_failure(
    caplog: pytest.LogCaptureFixture,
) -> None:
    static = StaticAdapter(
        _static("a-ethereum", 10.0, apy_base=1.0),
        _static("b-ethereum", 500.0, apy_reward=2.0, reward_tokens=("0xr",)),
        _static("c-ethereum", 0.0, apy_base=1.0),
    )
    pipeline = Pipeline([FailingAdapter(), static], context=make_context())

    with caplog.at_level("WARNING", logger="pool_yield_lab.pipeline"):
        repo = pipeline.run()

    assert any("boom" in rec.message for rec in caplog.records)
    assert repo.ids() == ["b-ethereum", "a-ethereum"]


def test_pool_ids_are_stable_across_runs(lending_context: AdapterContext) -> None:
    adapter = LendingMarketAdapter("aave-v3", [LendingMarket("ethereum", "main")])

    first = Pipeline([adapter], context=lending_context).run().ids()
    second = Pipeline([adapter], context=lending_context).run().ids()

    assert first == second == [f"{A_USDC.lower()}-ethereum"]


def test_records_outside_the_project_namespace_are_dropped() -> None:
    stray = PoolRecord("x-ethereum", "Ethereum", "someone-else", "USDC", 10.0, apy_base=1.0)
    repo = Pipeline([StaticAdapter(stray)], context=make_context()).run()
    assert len(repo) == 0


def test_fetch_pools_returns_published_json(monkeypatch: pytest.MonkeyPatch) -> None:
    ctx = make_context()

    @asynccontextmanager
    async def _open(settings: Settings):
        yield ctx

    monkeypatch.setattr(AdapterContext, "open", _open)

    data = fetch_pools(StaticAdapter(_static("a-ethereum", 10.0, apy_base=1.5)))

    assert data == [
        {
            "poolId": "a-ethereum",
            "chain": "Ethereum",
            "project": "static",
            "symbol": "USDC",
            "tvlUsd": 10.0,
            "apyBase": 1.5,
        }
    ]


def test_context_closes_rpc_reader_when_run_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    readers: list[Web3Reader] = []

    class RecordingReader(Web3Reader):
        closed = False

        def __init__(self, *args: object, **kwargs: object) -> None:
            super().__init__(*args, **kwargs)  # type: ignore[arg-type]
            readers.append(self)

        async def close(self) -> None:
            self.closed = True
            await super().close()

    monkeypatch.setattr(context_module, "Web3Reader", RecordingReader)

    async def _run() -> None:
        async with AdapterContext.open(Settings()) as ctx:
            assert ctx.chain is readers[0]
            raise RuntimeError("adapter crashed")

    with pytest.raises(RuntimeError, match="adapter crashed"):
        asyncio.run(_run())
    assert readers[0].closed
