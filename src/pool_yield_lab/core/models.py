"""Immutable data models used throughout pool_yield_lab."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any


class SourceFormat(Enum):
    """Upstream shape an adapter reads from."""

    ON_CHAIN = "on_chain"
    SUBGRAPH = "subgraph"
    API = "api"


def make_pool_id(address: str, chain: str) -> str:
    """Default pool identity: ``<address>-<chain>`` lower-cased."""

    return f"{address}-{chain}".lower()


# python attribute -> published JSON key
_JSON_KEYS = {
    "pool_id": "poolId",
    "chain": "chain",
    "project": "project",
    "symbol": "symbol",
    "tvl_usd": "tvlUsd",
    "apy_base": "apyBase",
    "apy_base_7d": "apyBase7d",
    "apy_reward": "apyReward",
    "apy": "apy",
    "apy_base_borrow": "apyBaseBorrow",
    "apy_reward_borrow": "apyRewardBorrow",
    "total_supply_usd": "totalSupplyUsd",
    "total_borrow_usd": "totalBorrowUsd",
    "reward_tokens": "rewardTokens",
    "underlying_tokens": "underlyingTokens",
    "pool_meta": "poolMeta",
    "url": "url",
    "search_token_override": "searchTokenOverride",
}

NUMERIC_FIELDS = (
    "tvl_usd",
    "apy_base",
    "apy_base_7d",
    "apy_reward",
    "apy",
    "apy_base_borrow",
    "apy_reward_borrow",
    "total_supply_usd",
    "total_borrow_usd",
)


@dataclass(frozen=True)
class PoolRecord:
    """Canonical yield record for one pool (percentages, not fractions)."""

    pool_id: str
    chain: str
    project: str
    symbol: str
    tvl_usd: float
    apy_base: float | None = None
    apy_reward: float | None = None
    apy: float | None = None
    apy_base_7d: float | None = None
    apy_base_borrow: float | None = None
    apy_reward_borrow: float | None = None
    total_supply_usd: float | None = None
    total_borrow_usd: float | None = None
    reward_tokens: tuple[str, ...] = field(default_factory=tuple)
    underlying_tokens: tuple[str, ...] = field(default_factory=tuple)
    pool_meta: str | None = None
    url: str | None = None
    search_token_override: str | None = None

    def __post_init__(self) -> None:
        # accept lists from adapters but store tuples so records stay hashable
        object.__setattr__(self, "reward_tokens", tuple(self.reward_tokens or ()))
        object.__setattr__(self, "underlying_tokens", tuple(self.underlying_tokens or ()))

    @property
    def has_native_reward(self) -> bool:
        return bool(self.reward_tokens) or bool(self.apy_reward)

    def numeric_values(self) -> dict[str, float]:
        return {
            name: getattr(self, name) for name in NUMERIC_FIELDS if getattr(self, name) is not None
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialise to the published JSON shape, dropping unset fields."""

        data: dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, tuple):
                if not value:
                    continue
                value = list(value)
            data[_JSON_KEYS[f.name]] = value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PoolRecord":
        by_json = {json_key: attr for attr, json_key in _JSON_KEYS.items()}
        kwargs = {by_json[k]: v for k, v in data.items() if k in by_json}
        return cls(**kwargs)


@dataclass(frozen=True)
class RateObservation:
    """One reading of a growing metric (exchange rate, NAV, index)."""

    raw_value: int | float
    decimals: int = 0
    timestamp: int | None = None
    block: int | None = None

    @property
    def value(self) -> float:
        if self.decimals == 0:
            return float(self.raw_value)
        return self.raw_value / 10**self.decimals


__all__ = [
    "NUMERIC_FIELDS",
    "PoolRecord",
    "RateObservation",
    "SourceFormat",
    "make_pool_id",
]
