from __future__ import annotations

import pytest

from pool_yield_lab.core import PoolRecord, RateObservation, make_pool_id


def test_make_pool_id_lowercases_and_is_idempotent() -> None:
    first = make_pool_id("0xAbCdEf0000000000000000000000000000000001", "Ethereum")
    second = make_pool_id("0xAbCdEf0000000000000000000000000000000001", "Ethereum")
    assert first == "0xabcdef0000000000000000000000000000000001-ethereum"
    assert first == second


def test_record_to_dict_uses_published_keys_and_drops_unset() -> None:
    record = PoolRecord(
        pool_id="0xabc-ethereum",
        chain="Ethereum",
        project="demo",
        symbol="USDC",
        tvl_usd=1_000.0,
        apy_base=4.2,
        underlying_tokens=["0xusdc"],
    )
    data = record.to_dict()
    assert data == {
        "poolId": "0xabc-ethereum",
        "chain": "Ethereum",
        "project": "demo",
        "symbol": "USDC",
        "tvlUsd": 1_000.0,
        "apyBase": 4.2,
        "underlyingTokens": ["0xusdc"],
    }
    assert "rewardTokens" not in data
    assert PoolRecord.from_dict(data) == record


def test_token_lists_are_stored_as_tuples() -> None:
    record = PoolRecord("p", "Ethereum", "demo", "X", 1.0, apy_reward=1.0, reward_tokens=["0xr"])
    assert record.reward_tokens == ("0xr",)
    assert hash(record)


@pytest.mark.parametrize(
    ("kwargs", "expected"),
    [
        ({}, False),
        ({"apy_reward": 0.0}, False),
        ({"apy_reward": 2.0}, True),
        ({"reward_tokens": ("0xr",)}, True),
    ],
)
def test_has_native_reward(kwargs: dict[str, object], expected: bool) -> None:
    record = PoolRecord("p", "Ethereum", "demo", "X", 1.0, apy_base=1.0, **kwargs)
    assert record.has_native_reward is expected


def test_rate_observation_scales_by_decimals() -> None:
    assert RateObservation(1_000_192, decimals=6).value == pytest.approx(1.000192)
    assert RateObservation(1.5).value == 1.5
