"""Source clients: thin fetchers for on-chain reads, subgraphs and REST APIs.

Pure I/O. Each collaborator is described by a :class:`typing.Protocol` so
that adapters and tests can swap in any implementation.
"""

from __future__ import annotations

from .blocks import BlockResolver, ChainBlockResolver, LlamaBlockResolver, RpcBlockResolver
from .http import HttpClient, JsonHttpClient
from .merkl import IncentiveRegistry, MerklClient, Opportunity
from .onchain import OnChainReader, Web3Reader
from .prices import LlamaPriceClient, PriceClient, price_key
from .retry import RetryPolicy, is_retryable
from .subgraph import SubgraphClient

__all__ = [
    "BlockResolver",
    "ChainBlockResolver",
    "HttpClient",
    "IncentiveRegistry",
    "JsonHttpClient",
    "LlamaBlockResolver",
    "LlamaPriceClient",
    "MerklClient",
    "OnChainReader",
    "Opportunity",
    "PriceClient",
    "RetryPolicy",
    "RpcBlockResolver",
    "SubgraphClient",
    "Web3Reader",
    "is_retryable",
    "price_key",
]
