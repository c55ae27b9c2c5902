"""Liquid staking tokens whose yield accrues in a receipt-to-underlying exchange rate."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
import logging
from typing import Any

from ..annualize import CompoundingModel, annualize_sample
from ..core import PoolRecord, SourceFormat, make_pool_id
from ..normalize import format_chain, format_symbol
from ..pipeline import collect_pools
from ..pipeline.context import AdapterContext
from ..sources.abi import (
    ERC20_TOTAL_SUPPLY,
    ERC4626_CONVERT_TO_ASSETS,
    ERC4626_TOTAL_ASSETS,
    view_function,
)
from ..tvl import exchange_rate_tvl, share_vault_tvl
from .base import AdapterBase

logger = logging.getLogger(__name__)


class TvlBasis(Enum):
    TOTAL_ASSETS = "total_assets"  # ERC-4626 totalAssets() of the receipt token
    SUPPLY_TIMES_RATE = "supply_times_rate"  # totalSupply() x exchange rate


@dataclass(frozen=True)
class RateMarket:
    token: str
    symbol: str
    underlying: str
    price_key: str
    rate_target: str | None = None  # defaults to the token itself
    rate_abi: Mapping[str, Any] = field(default_factory=lambda: ERC4626_CONVERT_TO_ASSETS)
    tvl_basis: TvlBasis = TvlBasis.TOTAL_ASSETS
    decimals: int = 18
    pool_id: str | None = None  # published id, kept verbatim when set
    url: str | None = None

    @property
    def one(self) -> int:
        return 10**self.decimals


class ExchangeRateAdapter(AdapterBase):
    """Rate of one whole token now, 1d and 7d ago; linear annualization per window.

    Block lookups are resolved once per run and shared by every market on
    the chain.
    """

    sources = frozenset({SourceFormat.ON_CHAIN, SourceFormat.API})

    def __init__(
        self,
        project: str,
        chain: str,
        markets: Sequence[RateMarket],
        *,
        url: str | None = None,
    ) -> None:
        self.project = project
        self.chain = chain
        self.markets = list(markets)
        self.url = url

    async def _pool(
        self,
        ctx: AdapterContext,
        m: RateMarket,
        blocks: Mapping[float, int | None],
        prices: Mapping[str, float],
    ) -> PoolRecord:
        target = m.rate_target or m.token
        abi = dict(m.rate_abi)

        async def rate_at(block: int | None) -> int:
            return await ctx.chain.call(target, abi, self.chain, params=[m.one], block=block)

        if m.tvl_basis is TvlBasis.TOTAL_ASSETS:
            basis_abi = ERC4626_TOTAL_ASSETS
        else:
            basis_abi = ERC20_TOTAL_SUPPLY
        sample, basis = await asyncio.gather(
            ctx.sampler.sample(self.chain, rate_at, decimals=m.decimals, blocks=blocks),
            ctx.chain.call(m.token, basis_abi, self.chain),
        )

        pool_id = m.pool_id or make_pool_id(m.token, self.chain)
        price = prices.get(m.price_key)
        if m.tvl_basis is TvlBasis.TOTAL_ASSETS:
            tvl = share_vault_tvl(basis, m.decimals, price, pool_id=pool_id)
        else:
            tvl = exchange_rate_tvl(
                basis, m.decimals, sample.current.raw_value, m.decimals, price, pool_id=pool_id
            )

        yields = annualize_sample(
            sample, model=CompoundingModel.LINEAR, smoothing=ctx.smoothing
        )
        return PoolRecord(
            pool_id=pool_id,
            chain=format_chain(self.chain),
            project=self.project,
            symbol=format_symbol(m.symbol),
            tvl_usd=tvl,
            apy_base=yields.apy_base,
            apy_base_7d=yields.apy_base_7d,
            underlying_tokens=(m.underlying,),
            search_token_override=m.token,
            url=m.url or self.url,
        )

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        prices, blocks = await asyncio.gather(
            ctx.prices.get_prices_by_key(m.price_key for m in self.markets),
            ctx.sampler.reference_blocks(self.chain),
        )
        return await collect_pools(
            (m.symbol, self._pool(ctx, m, blocks, prices)) for m in self.markets
        )


KHYPE_TO_HYPE = view_function("kHYPEToHYPE", inputs=("uint256",))

_KNTQ = "0x000000000000780555bD0BCA3791f89f9542c2d6"
_SKNTQ = "0x696238e0Ca31c94e24ca4CBe7921754E172E4d0F"
_KHYPE = "0xfD739d4e423301CE9385c1fb8850539D657C296D"

KINETIQ = ExchangeRateAdapter(
    "kinetiq-khype",
    "hyperliquid",
    [
        RateMarket(
            token=_SKNTQ,
            symbol="sKNTQ",
            underlying=_KNTQ,
            price_key=f"hyperliquid:{_KNTQ}",
            pool_id=f"{_SKNTQ}-hyperliquid",
            url="https://kinetiq.xyz/kntq",
        ),
        RateMarket(
            token=_KHYPE,
            symbol="kHYPE",
            underlying="0x5555555555555555555555555555555555555555",
            price_key="coingecko:hyperliquid",
            rate_target="0x9209648Ec9D448EF57116B73A2f081835643dc7A",
            rate_abi=KHYPE_TO_HYPE,
            tvl_basis=TvlBasis.SUPPLY_TIMES_RATE,
            pool_id=f"{_KHYPE}-hyperliquid",
            url="https://kinetiq.xyz/stake-hype",
        ),
    ],
    url="https://kinetiq.xyz",
)

__all__ = ["ExchangeRateAdapter", "KINETIQ", "RateMarket", "TvlBasis"]
