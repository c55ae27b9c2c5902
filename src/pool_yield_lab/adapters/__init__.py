"""Protocol integrations, keyed by the project name they publish under."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import MappingProxyType

from .base import AdapterBase
from .exchange_rate import KINETIQ, ExchangeRateAdapter, RateMarket, TvlBasis
from .lending import AAVE_V3, LendingMarket, LendingMarketAdapter
from .nav_vault import GAIB, NavVault, NavVaultAdapter
from .reward_api import USUAL_ETH0, USUAL_EUR0, RewardApiAdapter, RewardToken
from .treasury_vault import AERA_V2, TreasuryVaultAdapter

INTEGRATIONS: Mapping[str, Callable[[], AdapterBase]] = MappingProxyType(
    {
        adapter.project: (lambda a=adapter: a)
        for adapter in (GAIB, KINETIQ, USUAL_ETH0, USUAL_EUR0, AERA_V2, AAVE_V3)
    }
)


def get_adapter(project: str) -> AdapterBase:
    """Return the integration registered as ``project``."""

    try:
        factory = INTEGRATIONS[project]
    except KeyError:
        known = ", ".join(sorted(INTEGRATIONS))
        raise KeyError(f"unknown integration {project!r}; known: {known}") from None
    return factory()


__all__ = [
    "AdapterBase",
    "ExchangeRateAdapter",
    "INTEGRATIONS",
    "LendingMarket",
    "LendingMarketAdapter",
    "NavVault",
    "NavVaultAdapter",
    "RateMarket",
    "RewardApiAdapter",
    "RewardToken",
    "TreasuryVaultAdapter",
    "TvlBasis",
    "get_adapter",
]
