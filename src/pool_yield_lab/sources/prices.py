"""USD price lookups keyed by ``chain:address``."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
import logging
import math
from typing import Protocol

from ..core.constants import chain_info
from ..core.errors import MalformedUpstream
from .http import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_PRICES_URL = "https://coins.llama.fi/prices/current"
# keeps request URLs well below common length limits
MAX_KEYS_PER_REQUEST = 50


def price_key(chain: str, address: str) -> str:
    info = chain_info(chain)
    slug = info.slug if info else chain.lower()
    return f"{slug}:{address.lower()}"


class PriceClient(Protocol):
    async def get_prices(self, addresses: Sequence[str], chain: str) -> dict[str, float]: ...

    async def get_prices_by_key(self, keys: Iterable[str]) -> dict[str, float]: ...


class LlamaPriceClient:
    """Current prices from ``{base_url}/{key1,key2,...}``.

    Missing or non-finite prices are omitted from the result; callers decide
    how a missing price affects TVL.
    """

    def __init__(self, http: HttpClient, base_url: str = DEFAULT_PRICES_URL) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")

    async def _fetch_chunk(self, keys: list[str]) -> dict[str, float]:
        data = await self._http.get_json(f"{self.base_url}/{','.join(keys)}")
        coins = data.get("coins") if isinstance(data, dict) else None
        if not isinstance(coins, dict):
            raise MalformedUpstream("price response has no 'coins' object", source=self.base_url)
        by_lower = {str(k).lower(): v for k, v in coins.items()}
        out: dict[str, float] = {}
        for key in keys:
            entry = by_lower.get(key.lower())
            price = entry.get("price") if isinstance(entry, dict) else None
            try:
                value = float(price)  # type: ignore[arg-type]
            except (TypeError, ValueError):
                continue
            if math.isfinite(value) and value > 0:
                out[key] = value
        return out

    async def get_prices_by_key(self, keys: Iterable[str]) -> dict[str, float]:
        unique = list(dict.fromkeys(keys))
        if not unique:
            return {}
        chunks = [
            unique[i : i + MAX_KEYS_PER_REQUEST]
            for i in range(0, len(unique), MAX_KEYS_PER_REQUEST)
        ]
        results = await asyncio.gather(*(self._fetch_chunk(chunk) for chunk in chunks))
        merged: dict[str, float] = {}
        for part in results:
            merged.update(part)
        missing = [k for k in unique if k not in merged]
        if missing:
            logger.warning("No price for %s", ", ".join(missing))
        return merged

    async def get_prices(self, addresses: Sequence[str], chain: str) -> dict[str, float]:
        """Prices keyed by lower-cased address."""

        keys = {price_key(chain, addr): addr.lower() for addr in addresses}
        by_key = await self.get_prices_by_key(keys)
        return {keys[k]: v for k, v in by_key.items()}


__all__ = [
    "DEFAULT_PRICES_URL",
    "LlamaPriceClient",
    "PriceClient",
    "price_key",
]
