"""Core data structures for :mod:`pool_yield_lab`.

This subpackage groups the record model, the chain table and the error
hierarchy so that sources, adapters and the pipeline can share them without
importing the entire public interface exposed in :mod:`pool_yield_lab`.
"""

from __future__ import annotations

from .constants import CHAINS, RAY, ChainInfo, blocks_per_year, chain_info
from .errors import (
    HttpStatusError,
    InsufficientHistory,
    InvariantViolation,
    MalformedUpstream,
    PoolYieldError,
    SourceUnavailable,
    UnresolvedPrice,
)
from .models import PoolRecord, RateObservation, SourceFormat, make_pool_id
from .repositories import PoolRecordRepository, summarize_by_chain

__all__ = [
    "CHAINS",
    "ChainInfo",
    "HttpStatusError",
    "InsufficientHistory",
    "InvariantViolation",
    "MalformedUpstream",
    "PoolRecord",
    "PoolRecordRepository",
    "PoolYieldError",
    "RAY",
    "RateObservation",
    "SourceFormat",
    "SourceUnavailable",
    "UnresolvedPrice",
    "blocks_per_year",
    "chain_info",
    "make_pool_id",
    "summarize_by_chain",
]
