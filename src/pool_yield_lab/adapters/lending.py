"""Aave-style lending markets read from a reserves subgraph."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from ..core import MalformedUpstream, PoolRecord, SourceFormat, make_pool_id
from ..normalize import format_chain, format_symbol, from_decimals, ray_to_percent
from ..pipeline import collect_pools
from ..pipeline.context import AdapterContext
from ..tvl import Holding, assemble_tvl
from .base import AdapterBase

logger = logging.getLogger(__name__)

RESERVES_QUERY = """
query Reserves($first: Int!) {
  reserves(first: $first, where: { isActive: true }) {
    underlyingAsset
    symbol
    decimals
    liquidityRate
    variableBorrowRate
    availableLiquidity
    totalCurrentVariableDebt
    aToken { id }
  }
}
"""


@dataclass(frozen=True)
class LendingMarket:
    chain: str
    subgraph: str  # settings.subgraphs key or a literal URL
    pool_meta: str | None = None


@dataclass(frozen=True)
class Reserve:
    underlying: str
    a_token: str
    symbol: str
    decimals: int
    liquidity_rate: int
    borrow_rate: int
    available: int
    debt: int

    @classmethod
    def from_subgraph(cls, item: Mapping[str, Any]) -> "Reserve":
        try:
            return cls(
                underlying=str(item["underlyingAsset"]),
                a_token=str(item["aToken"]["id"]),
                symbol=str(item["symbol"]),
                decimals=int(item["decimals"]),
                liquidity_rate=int(item["liquidityRate"]),
                borrow_rate=int(item["variableBorrowRate"]),
                available=int(item["availableLiquidity"]),
                debt=int(item.get("totalCurrentVariableDebt") or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedUpstream(f"bad reserve entry: {exc}") from exc


def subgraph_url(ref: str, subgraphs: Mapping[str, str]) -> str:
    if ref.startswith(("http://", "https://")):
        return ref
    try:
        return subgraphs[ref]
    except KeyError:
        raise MalformedUpstream(f"no subgraph configured for {ref!r}", source=ref) from None


class LendingMarketAdapter(AdapterBase):
    """Supply and borrow rates in RAY, TVL as liquidity still available to borrow.

    Incentives are not in the subgraph; the pipeline merges them from the
    registry by aToken address, which is the head of the pool id.
    """

    sources = frozenset({SourceFormat.SUBGRAPH, SourceFormat.API})
    merge_registry_rewards = True

    def __init__(
        self,
        project: str,
        markets: Sequence[LendingMarket],
        *,
        first: int = 1000,
        url: str | None = None,
    ) -> None:
        self.project = project
        self.markets = list(markets)
        self.first = first
        self.url = url

    def _record(self, market: LendingMarket, r: Reserve, price: float | None) -> PoolRecord:
        pool_id = make_pool_id(r.a_token, market.chain)
        supplied = r.available + r.debt
        return PoolRecord(
            pool_id=pool_id,
            chain=format_chain(market.chain),
            project=self.project,
            symbol=format_symbol(r.symbol),
            tvl_usd=assemble_tvl([Holding(r.available, r.decimals, price, r.underlying)], pool_id=pool_id),
            apy_base=ray_to_percent(r.liquidity_rate),
            apy_base_borrow=ray_to_percent(r.borrow_rate),
            total_supply_usd=from_decimals(supplied, r.decimals) * price if price else None,
            total_borrow_usd=from_decimals(r.debt, r.decimals) * price if price else None,
            underlying_tokens=(r.underlying,),
            pool_meta=market.pool_meta,
            url=self.url,
        )

    async def _market(self, ctx: AdapterContext, market: LendingMarket) -> list[PoolRecord]:
        url = subgraph_url(market.subgraph, ctx.settings.subgraphs)
        data = await ctx.subgraph.query(url, RESERVES_QUERY, {"first": self.first})
        items = data.get("reserves")
        if not isinstance(items, list):
            raise MalformedUpstream("subgraph data has no reserves list", source=url)
        reserves: list[Reserve] = []
        for item in items:
            try:
                reserves.append(Reserve.from_subgraph(item))
            except MalformedUpstream as exc:
                logger.warning("Excluding reserve on %s: %s", market.chain, exc)
        prices = await ctx.prices.get_prices([r.underlying for r in reserves], market.chain)
        return [self._record(market, r, prices.get(r.underlying.lower())) for r in reserves]

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        return await collect_pools((m.chain, self._market(ctx, m)) for m in self.markets)


AAVE_V3 = LendingMarketAdapter(
    "aave-v3",
    [
        LendingMarket("ethereum", "aave-v3-ethereum"),
        LendingMarket("arbitrum", "aave-v3-arbitrum"),
        LendingMarket("base", "aave-v3-base"),
    ],
    url="https://app.aave.com",
)

__all__ = ["AAVE_V3", "LendingMarket", "LendingMarketAdapter", "Reserve", "subgraph_url"]
