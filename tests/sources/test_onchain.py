from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from pool_yield_lab.core import SourceUnavailable
from pool_yield_lab.sources import RetryPolicy, Web3Reader
from pool_yield_lab.sources.abi import ERC20_TOTAL_SUPPLY

TOKEN = "0x" + "a" * 40


class _Provider:
    def __init__(self) -> None:
        self.disconnected = 0

    async def disconnect(self) -> None:
        self.disconnected += 1


def test_chain_without_endpoint_fails_without_retrying() -> None:
    sleeps: list[float] = []

    async def sleep(delay: float) -> None:
        sleeps.append(delay)

    reader = Web3Reader({}, retry=RetryPolicy(max_attempts=4, sleep=sleep))

    with pytest.raises(SourceUnavailable, match="no RPC endpoint configured for ethereum"):
        asyncio.run(reader.call(TOKEN, ERC20_TOTAL_SUPPLY, "ethereum"))
    assert sleeps == []


def test_web3_clients_are_cached_per_chain_slug() -> None:
    reader = Web3Reader({"Ethereum": "https://rpc.test"})
    assert reader.web3("ethereum") is reader.web3("Ethereum")


def test_close_disconnects_every_provider() -> None:
    reader = Web3Reader({"ethereum": "https://rpc.test"})
    providers = {"ethereum": _Provider(), "base": _Provider()}
    reader._clients = {slug: SimpleNamespace(provider=p) for slug, p in providers.items()}  # type: ignore[misc]

    asyncio.run(reader.close())

    assert [p.disconnected for p in providers.values()] == [1, 1]
    assert reader._clients == {}
    asyncio.run(reader.close())
    assert [p.disconnected for p in providers.values()] == [1, 1]
