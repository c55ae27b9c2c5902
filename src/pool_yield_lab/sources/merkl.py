"""Merkl incentive registry client."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Any, Protocol

from ..core.errors import MalformedUpstream
from .http import HttpClient

logger = logging.getLogger(__name__)

DEFAULT_MERKL_URL = "https://api.merkl.xyz/v4/opportunities"
LIVE = "LIVE"


@dataclass(frozen=True)
class Opportunity:
    """A reward campaign on one pool: APR in percent and the tokens paid out."""

    apr: float
    reward_tokens: tuple[str, ...] = ()
    identifier: str = ""


class IncentiveRegistry(Protocol):
    async def get_opportunities(
        self, chain_id: int, identifier: str, status: str = LIVE
    ) -> list[Opportunity]: ...


def parse_opportunity(item: dict[str, Any]) -> Opportunity:
    try:
        apr = float(item["apr"])
    except (KeyError, TypeError, ValueError) as exc:
        raise MalformedUpstream(f"opportunity without numeric apr: {item!r:.120}") from exc
    breakdowns = (item.get("rewardsRecord") or {}).get("breakdowns") or []
    tokens: dict[str, None] = {}
    for breakdown in breakdowns:
        address = (breakdown.get("token") or {}).get("address")
        if address:
            tokens[address] = None
    return Opportunity(
        apr=apr, reward_tokens=tuple(tokens), identifier=str(item.get("identifier", ""))
    )


class MerklClient:
    """``GET {base_url}?chainId=..&identifier=..&status=LIVE`` returning a list of opportunities."""

    def __init__(self, http: HttpClient, base_url: str = DEFAULT_MERKL_URL) -> None:
        self._http = http
        self.base_url = base_url

    async def get_opportunities(
        self, chain_id: int, identifier: str, status: str = LIVE
    ) -> list[Opportunity]:
        data = await self._http.get_json(
            self.base_url,
            params={"chainId": chain_id, "identifier": identifier, "status": status},
        )
        if not isinstance(data, list):
            raise MalformedUpstream("registry response is not a list", source=self.base_url)
        return [
            parse_opportunity(item)
            for item in data
            if isinstance(item, dict) and item.get("status", status) == status
        ]


__all__ = [
    "DEFAULT_MERKL_URL",
    "IncentiveRegistry",
    "LIVE",
    "MerklClient",
    "Opportunity",
    "parse_opportunity",
]
