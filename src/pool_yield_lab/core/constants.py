"""Read-only constants shared by the normalizer, sampler and annualizer."""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

RAY = 10**27
WAD = 10**18

SECONDS_PER_DAY = 86_400
DAYS_PER_YEAR = 365
DAYS_PER_YEAR_JULIAN = 365.25
SECONDS_PER_YEAR = SECONDS_PER_DAY * DAYS_PER_YEAR
WEEKS_PER_YEAR = 52


@dataclass(frozen=True)
class ChainInfo:
    """Static facts about a chain used when normalizing per-block rates."""

    slug: str
    name: str
    chain_id: int
    block_time: float  # seconds
    testnet: bool = False

    @property
    def blocks_per_year(self) -> float:
        return SECONDS_PER_YEAR / self.block_time


# Keyed by the lower-case slug used in price keys and RPC configuration.
# Display names follow the downstream spelling (e.g. "Binance" for bsc).
CHAINS: Mapping[str, ChainInfo] = MappingProxyType(
    {
        info.slug: info
        for info in (
            ChainInfo("ethereum", "Ethereum", 1, 12.0),
            ChainInfo("optimism", "Optimism", 10, 2.0),
            ChainInfo("bsc", "Binance", 56, 3.0),
            ChainInfo("xdai", "Gnosis", 100, 5.0),
            ChainInfo("polygon", "Polygon", 137, 2.1),
            ChainInfo("hyperliquid", "Hyperliquid", 999, 1.0),
            ChainInfo("base", "Base", 8453, 2.0),
            ChainInfo("arbitrum", "Arbitrum", 42161, 0.25),
            ChainInfo("avax", "Avalanche", 43114, 2.0),
            ChainInfo("holesky", "Holesky", 17000, 12.0, testnet=True),
        )
    }
)

CHAIN_IDS: Mapping[int, ChainInfo] = MappingProxyType({c.chain_id: c for c in CHAINS.values()})

# Alternative spellings seen in upstream payloads.
CHAIN_ALIASES: Mapping[str, str] = MappingProxyType(
    {
        "binance": "bsc",
        "bnb": "bsc",
        "gnosis": "xdai",
        "avalanche": "avax",
        "arbitrum one": "arbitrum",
        "op mainnet": "optimism",
        "mainnet": "ethereum",
        "eth": "ethereum",
    }
)


def chain_info(chain: str | int) -> ChainInfo | None:
    """Look a chain up by slug, display name, alias or numeric id."""

    if isinstance(chain, int):
        return CHAIN_IDS.get(chain)
    key = str(chain).strip().lower()
    if key.isdigit():
        return CHAIN_IDS.get(int(key))
    key = CHAIN_ALIASES.get(key, key)
    if key in CHAINS:
        return CHAINS[key]
    for info in CHAINS.values():
        if info.name.lower() == key:
            return info
    return None


def blocks_per_year(chain: str | int) -> float:
    info = chain_info(chain)
    if info is None:
        raise KeyError(f"unknown chain: {chain!r}")
    return info.blocks_per_year


__all__ = [
    "CHAINS",
    "CHAIN_ALIASES",
    "CHAIN_IDS",
    "ChainInfo",
    "DAYS_PER_YEAR",
    "DAYS_PER_YEAR_JULIAN",
    "RAY",
    "SECONDS_PER_DAY",
    "SECONDS_PER_YEAR",
    "WAD",
    "WEEKS_PER_YEAR",
    "blocks_per_year",
    "chain_info",
]
