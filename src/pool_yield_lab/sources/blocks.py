"""Map a wall-clock timestamp to a block height on a chain."""

from __future__ import annotations

from collections.abc import Mapping
import logging
from typing import Protocol

from ..core.constants import chain_info
from ..core.errors import MalformedUpstream
from .http import HttpClient
from .onchain import Web3Reader

logger = logging.getLogger(__name__)

DEFAULT_BLOCKS_URL = "https://coins.llama.fi/block"
BLOCK_SOURCES = ("llama", "rpc")


def _slug(chain: str) -> str:
    info = chain_info(chain)
    return info.slug if info else chain.lower()


class BlockResolver(Protocol):
    async def lookup_block(self, timestamp: int, chain: str) -> int: ...


class LlamaBlockResolver:
    """``GET {base_url}/{chain}/{timestamp}`` answering ``{"height": ..., "timestamp": ...}``."""

    def __init__(self, http: HttpClient, base_url: str = DEFAULT_BLOCKS_URL) -> None:
        self._http = http
        self.base_url = base_url.rstrip("/")

    async def lookup_block(self, timestamp: int, chain: str) -> int:
        slug = _slug(chain)
        data = await self._http.get_json(f"{self.base_url}/{slug}/{int(timestamp)}")
        height = data.get("height") if isinstance(data, dict) else None
        if not isinstance(height, int) or height <= 0:
            raise MalformedUpstream(
                f"block lookup for {slug}@{timestamp} returned no height", source=self.base_url
            )
        return height


class ChainBlockResolver:
    """Route each lookup to the resolver registered for its chain, else ``default``."""

    def __init__(self, default: BlockResolver, per_chain: Mapping[str, BlockResolver] | None = None) -> None:
        self.default = default
        self.per_chain = {_slug(k): v for k, v in (per_chain or {}).items()}

    def resolver_for(self, chain: str) -> BlockResolver:
        return self.per_chain.get(_slug(chain), self.default)

    async def lookup_block(self, timestamp: int, chain: str) -> int:
        return await self.resolver_for(chain).lookup_block(timestamp, chain)


class RpcBlockResolver:
    """Binary search over block timestamps through the chain's RPC endpoint.

    Slower than an indexer (``log2(head)`` reads), used for chains the
    block API does not cover.
    """

    def __init__(self, reader: Web3Reader) -> None:
        self._reader = reader

    async def _timestamp(self, chain: str, number: int) -> int:
        async def _once() -> int:
            block = await self._reader.web3(chain).eth.get_block(number)
            return int(block["timestamp"])

        return await self._reader.retry.run(_once, description=f"{chain}:getBlock({number})")

    async def lookup_block(self, timestamp: int, chain: str) -> int:
        async def _head() -> int:
            return int(await self._reader.web3(chain).eth.block_number)

        lo = 1
        hi = await self._reader.retry.run(_head, description=f"{chain}:blockNumber")
        ans = hi
        while lo <= hi:
            mid = (lo + hi) // 2
            if await self._timestamp(chain, mid) >= timestamp:
                ans = mid
                hi = mid - 1
            else:
                lo = mid + 1
        return ans


__all__ = [
    "BLOCK_SOURCES",
    "BlockResolver",
    "ChainBlockResolver",
    "DEFAULT_BLOCKS_URL",
    "LlamaBlockResolver",
    "RpcBlockResolver",
]
