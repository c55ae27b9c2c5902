"""Tokens whose yield is published as an APR by the protocol's own REST API."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
import logging
from typing import Any

from ..core import MalformedUpstream, PoolRecord, SourceFormat, make_pool_id
from ..core.constants import WEEKS_PER_YEAR
from ..normalize import apr_to_apy, format_chain, format_symbol
from ..pipeline import collect_pools
from ..pipeline.context import AdapterContext
from ..sources.abi import ERC20_TOTAL_SUPPLY
from ..tvl import share_vault_tvl
from .base import AdapterBase

logger = logging.getLogger(__name__)

USUAL_YIELDS_URL = "https://app.usual.money/api/tokens/yields"


@dataclass(frozen=True)
class RewardToken:
    token: str
    symbol: str
    api_pool: str  # top-level key in the yields payload
    api_reward: str  # reward key under it
    price_token: str  # asset whose price values the supply
    reward_tokens: tuple[str, ...] = ()
    underlying_tokens: tuple[str, ...] = ()
    as_base: bool = False  # savings wrappers report the rate as apyBase
    chain: str = "ethereum"
    decimals: int = 18
    pool_id: str | None = None
    pool_meta: str | None = None
    url: str | None = None


def reward_apr(payload: Any, pool: str, reward: str) -> float:
    """APR percent at ``payload[pool][reward]``; a missing or zero entry is malformed."""

    entry = payload.get(pool) if isinstance(payload, Mapping) else None
    apr = entry.get(reward) if isinstance(entry, Mapping) else None
    try:
        value = float(apr)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        value = 0.0
    if not value:
        raise MalformedUpstream(f"reward {reward!r} not found for pool {pool!r}")
    return value


class RewardApiAdapter(AdapterBase):
    """Reward APR from the API, compounded weekly; TVL as supply x reference price."""

    sources = frozenset({SourceFormat.ON_CHAIN, SourceFormat.API})

    def __init__(
        self,
        project: str,
        tokens: Sequence[RewardToken],
        *,
        api_url: str = USUAL_YIELDS_URL,
        periods_per_year: int = WEEKS_PER_YEAR,
        url: str | None = None,
    ) -> None:
        self.project = project
        self.tokens = list(tokens)
        self.api_url = api_url
        self.periods_per_year = periods_per_year
        self.url = url

    async def _pool(self, ctx: AdapterContext, t: RewardToken, payload: Any) -> PoolRecord:
        apy = apr_to_apy(reward_apr(payload, t.api_pool, t.api_reward), self.periods_per_year)
        supply, prices = await asyncio.gather(
            ctx.chain.call(t.token, ERC20_TOTAL_SUPPLY, t.chain),
            ctx.prices.get_prices([t.price_token], t.chain),
        )
        pool_id = t.pool_id or make_pool_id(t.token, t.chain)
        return PoolRecord(
            pool_id=pool_id,
            chain=format_chain(t.chain),
            project=self.project,
            symbol=format_symbol(t.symbol),
            tvl_usd=share_vault_tvl(
                supply, t.decimals, prices.get(t.price_token.lower()), pool_id=pool_id
            ),
            apy_base=apy if t.as_base else None,
            apy_reward=0.0 if t.as_base else apy,
            reward_tokens=t.reward_tokens,
            underlying_tokens=t.underlying_tokens,
            pool_meta=t.pool_meta,
            url=t.url or self.url,
        )

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        payload = await ctx.http.get_json(self.api_url)
        return await collect_pools((t.symbol, self._pool(ctx, t, payload)) for t in self.tokens)


_USUAL = "0xC4441c2BE5d8fA8126822B9929CA0b81Ea0DE38E"
_ETH0 = "0x734eec7930bc84eC5732022B9EB949A81fB89AbE"
_STETH = "0xae7ab96520DE3A18E5e111B5EaAb095312D7fE84"
_SEUR0 = "0x35f43C6604B0DE814ABAa2D94C878BD1F5165478"
_EUR0 = "0x3c89Cd1884E7beF73ca3ef08d2eF6EC338fD8E49"
_EUROC = "0x1abaea1f7c830bd89acc67ec4af516284b1bc33c"

USUAL_ETH0 = RewardApiAdapter(
    "usual-eth0",
    [
        RewardToken(
            token=_ETH0,
            symbol="ETH0",
            api_pool="ETH0",
            api_reward="USUAL",
            price_token=_STETH,
            reward_tokens=(_USUAL,),
            underlying_tokens=(_STETH,),
            pool_id=_ETH0,
        )
    ],
    url="https://app.usual.money/swap?action=stake",
)

# EUR0 has no price feed; EUROC stands in for it.
USUAL_EUR0 = RewardApiAdapter(
    "usual-eur0",
    [
        RewardToken(
            token=_SEUR0,
            symbol="sEUR0",
            api_pool="sEUR0",
            api_reward="EUR0",
            price_token=_EUROC,
            reward_tokens=(_EUR0,),
            underlying_tokens=(_EUR0,),
            as_base=True,
            pool_id=_SEUR0,
            pool_meta="EUR0 Savings",
            url="https://app.usual.money/swap?action=stake&from=EUR0&to=sEUR0",
        )
    ],
    url="https://app.usual.money/swap?action=stake",
)

__all__ = ["RewardApiAdapter", "RewardToken", "USUAL_EUR0", "USUAL_ETH0", "reward_apr"]
