"""ERC-4626 vaults whose yield shows up as NAV (assets per share) growth."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from dataclasses import dataclass
import logging

from ..annualize import CompoundingModel, annualize_sample
from ..core import PoolRecord, SourceFormat, make_pool_id
from ..normalize import format_chain, format_symbol, safe_div
from ..pipeline import collect_pools
from ..pipeline.context import AdapterContext
from ..sources.abi import ERC20_DECIMALS, ERC20_TOTAL_SUPPLY, ERC4626_TOTAL_ASSETS
from ..tvl import share_vault_tvl
from .base import AdapterBase

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NavVault:
    vault: str
    asset: str
    symbol: str
    chain: str = "ethereum"
    lookback_days: int = 30
    pool_meta: str | None = None


class NavVaultAdapter(AdapterBase):
    """NAV now vs ``lookback_days`` ago, geometrically annualized over 365.25 days.

    NAV is updated by the vault at its own cadence (monthly for some), so a
    long lookback is used and the growth is compounded.
    """

    sources = frozenset({SourceFormat.ON_CHAIN, SourceFormat.API})

    def __init__(self, project: str, vaults: Sequence[NavVault], *, url: str | None = None) -> None:
        self.project = project
        self.vaults = list(vaults)
        self.url = url

    async def _pool(self, ctx: AdapterContext, v: NavVault) -> PoolRecord:
        async def nav_at(block: int | None) -> float:
            assets, supply = await asyncio.gather(
                ctx.chain.call(v.vault, ERC4626_TOTAL_ASSETS, v.chain, block=block),
                ctx.chain.call(v.vault, ERC20_TOTAL_SUPPLY, v.chain, block=block),
            )
            return safe_div(assets, supply)

        sample, total_assets, decimals, prices = await asyncio.gather(
            ctx.sampler.sample(v.chain, nav_at, windows=(v.lookback_days,)),
            ctx.chain.call(v.vault, ERC4626_TOTAL_ASSETS, v.chain),
            ctx.chain.call(v.asset, ERC20_DECIMALS, v.chain),
            ctx.prices.get_prices([v.asset], v.chain),
        )
        pool_id = make_pool_id(v.vault, v.chain)
        yields = annualize_sample(
            sample,
            model=CompoundingModel.COMPOUND,
            windows=(v.lookback_days,),
            smoothing=ctx.smoothing,
        )
        return PoolRecord(
            pool_id=pool_id,
            chain=format_chain(v.chain),
            project=self.project,
            symbol=format_symbol(v.symbol),
            tvl_usd=share_vault_tvl(
                total_assets, int(decimals), prices.get(v.asset.lower()), pool_id=pool_id
            ),
            apy_base=yields.apy_base,
            underlying_tokens=(v.asset,),
            pool_meta=v.pool_meta,
            url=self.url,
        )

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        return await collect_pools((v.vault, self._pool(ctx, v)) for v in self.vaults)


GAIB = NavVaultAdapter(
    "gaib",
    [
        NavVault(
            vault="0xB3B3c527BA57cd61648e2EC2F5e006A0B390A9F8",
            asset="0x18F52B3fb465118731d9e0d276d4Eb3599D57596",
            symbol="sAID",
            lookback_days=30,
            pool_meta="30d withdrawal cycle",
        )
    ],
    url="https://aid.gaib.ai",
)

__all__ = ["GAIB", "NavVault", "NavVaultAdapter"]
