"""Per-run bundle of collaborators handed to every adapter."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from ..annualize import SmoothingPolicy
from ..config import Settings
from ..sampling import RateSampler
from ..sources import (
    BlockResolver,
    ChainBlockResolver,
    HttpClient,
    IncentiveRegistry,
    JsonHttpClient,
    LlamaBlockResolver,
    LlamaPriceClient,
    MerklClient,
    OnChainReader,
    PriceClient,
    RpcBlockResolver,
    SubgraphClient,
    Web3Reader,
)


@dataclass(frozen=True)
class AdapterContext:
    settings: Settings
    http: HttpClient
    chain: OnChainReader
    prices: PriceClient
    blocks: BlockResolver
    sampler: RateSampler
    subgraph: SubgraphClient
    registry: IncentiveRegistry

    @property
    def smoothing(self) -> SmoothingPolicy:
        return self.settings.smoothing

    @classmethod
    @asynccontextmanager
    async def open(cls, settings: Settings) -> AsyncIterator["AdapterContext"]:
        """Wire the default collaborators; HTTP and RPC sessions live for one run."""

        http = JsonHttpClient(timeout=settings.http_timeout, retry=settings.retry)
        chain = Web3Reader(settings.rpc_urls, retry=settings.retry, timeout=settings.http_timeout)
        try:
            blocks = block_resolver(settings, http, chain)
            yield cls(
                settings=settings,
                http=http,
                chain=chain,
                prices=LlamaPriceClient(http, settings.prices_url),
                blocks=blocks,
                sampler=RateSampler(blocks, windows=settings.windows),
                subgraph=SubgraphClient(http),
                registry=MerklClient(http, settings.merkl_url),
            )
        finally:
            try:
                await http.close()
            finally:
                await chain.close()


def block_resolver(settings: Settings, http: HttpClient, chain: Web3Reader) -> BlockResolver:
    """Block API by default; chains set to ``rpc`` in ``[block_sources]`` search their RPC."""

    rpc = RpcBlockResolver(chain)
    per_chain = {slug: rpc for slug, source in settings.block_sources.items() if source == "rpc"}
    return ChainBlockResolver(LlamaBlockResolver(http, settings.blocks_url), per_chain)


__all__ = ["AdapterContext", "block_resolver"]
