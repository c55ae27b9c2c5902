"""USD TVL from raw balances, token decimals and prices."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
import logging
import math

from .core.errors import UnresolvedPrice
from .normalize import from_decimals

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Holding:
    """One leg of a pool: raw on-chain balance, token decimals and USD price."""

    raw_balance: int | float
    decimals: int
    price_usd: float | None
    token: str = ""

    @property
    def priced(self) -> bool:
        return self.price_usd is not None and math.isfinite(self.price_usd)

    @property
    def amount(self) -> float:
        return from_decimals(self.raw_balance, self.decimals)

    def usd_value(self) -> float:
        """USD value of the leg; raises :class:`UnresolvedPrice` when unpriced."""

        if not self.priced:
            raise UnresolvedPrice(f"Unresolved price for {self.token or '?'}", token=self.token or None)
        return self.amount * float(self.price_usd)  # type: ignore[arg-type]


def assemble_tvl(holdings: Iterable[Holding], *, pool_id: str = "") -> float:
    """``sum(raw / 10**decimals * price)`` over all legs.

    If any leg has no usable price the whole pool resolves to ``0.0`` (and is
    dropped downstream); summing only the priced legs would understate TVL.
    """

    try:
        total = math.fsum(h.usd_value() for h in holdings)
    except UnresolvedPrice as exc:
        logger.warning("%s in pool %s; treating TVL as 0", exc, pool_id or "?")
        return 0.0
    return total if math.isfinite(total) and total > 0 else 0.0


def holdings_with_prices(
    legs: Sequence[tuple[str, int | float, int]], prices: Mapping[str, float]
) -> list[Holding]:
    """Attach prices (looked up case-insensitively by token address) to ``(token, raw, decimals)`` legs."""

    lowered = {k.lower(): v for k, v in prices.items()}
    return [
        Holding(raw_balance=raw, decimals=decimals, price_usd=lowered.get(token.lower()), token=token)
        for token, raw, decimals in legs
    ]


def share_vault_tvl(
    total_assets: int | float, decimals: int, price_usd: float | None, *, pool_id: str = ""
) -> float:
    """TVL of a share vault from ``totalAssets`` in the underlying asset."""

    return assemble_tvl([Holding(total_assets, decimals, price_usd)], pool_id=pool_id)


def exchange_rate_tvl(
    total_supply: int | float,
    supply_decimals: int,
    rate: int | float,
    rate_decimals: int,
    price_usd: float | None,
    *,
    pool_id: str = "",
) -> float:
    """TVL of a receipt token as ``totalSupply x exchangeRate x price``."""

    underlying = from_decimals(total_supply, supply_decimals) * from_decimals(rate, rate_decimals)
    return assemble_tvl([Holding(underlying, 0, price_usd)], pool_id=pool_id)


__all__ = [
    "Holding",
    "assemble_tvl",
    "exchange_rate_tvl",
    "holdings_with_prices",
    "share_vault_tvl",
]
