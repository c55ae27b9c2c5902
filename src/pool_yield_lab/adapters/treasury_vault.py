"""Multi-asset treasury vaults discovered through the protocol's vault listing."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
from typing import Any

from ..core import MalformedUpstream, PoolRecord, SourceFormat, make_pool_id
from ..core.constants import chain_info
from ..normalize import format_chain, format_symbol
from ..pipeline import collect_pools
from ..pipeline.context import AdapterContext
from ..sources.abi import ERC20_DECIMALS, ERC20_SYMBOL, view_function
from ..tvl import share_vault_tvl
from .base import AdapterBase

logger = logging.getLogger(__name__)

AERA_VAULTS_URL = "https://app.aera.finance/api/vaults"
AERA_APP_URL = "https://app.aera.finance"

VAULT_VALUE = view_function("value")
VAULT_ASSET_REGISTRY = view_function("assetRegistry", outputs=("address",))
VAULT_HOLDINGS = view_function(
    "holdings",
    outputs=(
        {
            "components": [
                {"internalType": "address", "name": "asset", "type": "address"},
                {"internalType": "uint256", "name": "balance", "type": "uint256"},
            ],
            "internalType": "struct AssetValue[]",
            "name": "",
            "type": "tuple[]",
        },
    ),
)
REGISTRY_NUMERAIRE = view_function("numeraireToken", outputs=("address",))

MAX_SYMBOLS = 3
FALLBACK_SYMBOL = "MULTI"


def _holding(entry: Any) -> tuple[str, int]:
    if isinstance(entry, Mapping):
        return str(entry["asset"]), int(entry["balance"])
    asset, balance = entry
    return str(asset), int(balance)


def nonzero_holdings(raw: Sequence[Any] | None) -> list[str]:
    """Assets of the vault's holdings with a non-zero balance, in vault order."""

    return [asset for asset, balance in map(_holding, raw or ()) if balance]


def holdings_symbol(symbols: Sequence[str | None], holding_count: int) -> str:
    """``A-B-C`` from up to three holdings, ``-...`` when more are held."""

    named = [s for s in symbols if s]
    if not named:
        return FALLBACK_SYMBOL
    symbol = "-".join(named)
    if holding_count > MAX_SYMBOLS:
        symbol += "-..."
    return symbol


class TreasuryVaultAdapter(AdapterBase):
    """Vault value priced in its numeraire token; no yield is published.

    The listing is filtered to supported mainnet chains and to the vault
    versions whose interface matches ``value``/``holdings``.
    """

    sources = frozenset({SourceFormat.ON_CHAIN, SourceFormat.API})

    def __init__(
        self,
        project: str,
        *,
        api_url: str = AERA_VAULTS_URL,
        chain_ids: Sequence[int] = (1, 10, 137, 8453, 42161),
        skip_versions: Sequence[str] = ("v3",),
        url: str | None = AERA_APP_URL,
    ) -> None:
        self.project = project
        self.api_url = api_url
        self.chain_ids = frozenset(chain_ids)
        self.skip_versions = frozenset(skip_versions)
        self.url = url

    def supported(self, vault: Mapping[str, Any]) -> str | None:
        """Chain slug for a listed vault, ``None`` when it should be skipped."""

        chain_id = vault.get("chain_id")
        if chain_id not in self.chain_ids or vault.get("aera_version") in self.skip_versions:
            return None
        info = chain_info(int(chain_id))
        if info is None or info.testnet:
            return None
        return info.slug

    async def _tvl(self, ctx: AdapterContext, address: str, chain: str, pool_id: str) -> float:
        value = await ctx.chain.call(address, VAULT_VALUE, chain)
        if not value:
            return 0.0
        registry = await ctx.chain.call(address, VAULT_ASSET_REGISTRY, chain)
        numeraire = await ctx.chain.call(registry, REGISTRY_NUMERAIRE, chain)
        decimals, prices = await asyncio.gather(
            ctx.chain.call(numeraire, ERC20_DECIMALS, chain),
            ctx.prices.get_prices([numeraire], chain),
        )
        return share_vault_tvl(value, int(decimals), prices.get(numeraire.lower()), pool_id=pool_id)

    async def _holdings(self, ctx: AdapterContext, address: str, chain: str) -> tuple[str, list[str]]:
        """Display symbol and held assets; a failed lookup leaves the generic symbol."""

        try:
            assets = nonzero_holdings(await ctx.chain.call(address, VAULT_HOLDINGS, chain))
            symbols = await ctx.chain.multi_call(
                ERC20_SYMBOL,
                [(asset, ()) for asset in assets[:MAX_SYMBOLS]],
                chain,
                permit_failure=True,
            )
        except Exception as exc:
            logger.warning("Holdings lookup failed for %s on %s: %s", address, chain, exc)
            return FALLBACK_SYMBOL, []
        return holdings_symbol(symbols, len(assets)), assets

    async def _pool(self, ctx: AdapterContext, vault: Mapping[str, Any], chain: str) -> PoolRecord | None:
        address = vault.get("vault_address")
        if not isinstance(address, str):
            raise MalformedUpstream("vault listing entry has no vault_address", source=self.api_url)
        pool_id = make_pool_id(address, chain)
        tvl, (symbol, assets) = await asyncio.gather(
            self._tvl(ctx, address, chain, pool_id),
            self._holdings(ctx, address, chain),
        )
        if tvl <= 0:
            logger.debug("Skipping %s: no value", pool_id)
            return None
        vault_type = vault.get("vault_type")
        return PoolRecord(
            pool_id=pool_id,
            chain=format_chain(chain),
            project=self.project,
            symbol=format_symbol(symbol),
            tvl_usd=tvl,
            apy_base=0.0,
            underlying_tokens=tuple(assets),
            pool_meta=vault_type.replace("_", " ", 1) if vault_type else None,
            url=f"{AERA_APP_URL}/vault/{vault['chain_id']}/{address}",
        )

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        listing = await ctx.http.get_json(self.api_url)
        if not isinstance(listing, list):
            raise MalformedUpstream("vault listing is not an array", source=self.api_url)
        selected = []
        for vault in listing:
            chain = self.supported(vault) if isinstance(vault, Mapping) else None
            if chain is not None:
                selected.append((vault, chain))
        logger.info("%s: %d of %d listed vaults supported", self.project, len(selected), len(listing))
        return await collect_pools(
            (str(vault.get("vault_address")), self._pool(ctx, vault, chain))
            for vault, chain in selected
        )


AERA_V2 = TreasuryVaultAdapter("aera-v2")

__all__ = [
    "AERA_V2",
    "TreasuryVaultAdapter",
    "holdings_symbol",
    "nonzero_holdings",
]
