"""
PoolYieldLab: per-protocol yield adapters producing one normalized pool record batch.

Design goals:
- Thin source clients (on-chain reads, subgraphs, REST APIs) behind Protocols
- One unit convention for rates: percentages, with explicit normalizers per format
- Historical sampling by timestamp -> block, annualized linearly or compounded
- Immutable record model (PoolRecord) + light repository
- One failing pool never fails the batch; it is logged and excluded
"""

from __future__ import annotations

from .adapters import INTEGRATIONS, AdapterBase, get_adapter
from .annualize import (
    AnnualizedYield,
    CompoundingModel,
    SmoothingPolicy,
    annualize,
    annualize_sample,
    compound_apy,
    linear_apy,
)
from .config import Settings, load_config
from .core import (
    PoolRecord,
    PoolRecordRepository,
    PoolYieldError,
    RateObservation,
    SourceFormat,
    make_pool_id,
    summarize_by_chain,
)
from .normalize import (
    UnitFormat,
    apr_to_apy,
    bps_to_percent,
    format_chain,
    format_symbol,
    from_decimals,
    normalize,
    per_block_rate_to_apy,
    per_second_rate_to_apy,
    ray_to_percent,
    safe_div,
)
from .pipeline import Adapter, AdapterContext, Pipeline, collect_pools, fetch_pools
from .records import build_records, check_identity, validate_record
from .rewards import RewardMerger
from .sampling import RateSample, RateSampler
from .tvl import Holding, assemble_tvl, exchange_rate_tvl, share_vault_tvl

__all__ = [
    "Adapter",
    "AdapterBase",
    "AdapterContext",
    "AnnualizedYield",
    "CompoundingModel",
    "Holding",
    "INTEGRATIONS",
    "Pipeline",
    "PoolRecord",
    "PoolRecordRepository",
    "PoolYieldError",
    "RateObservation",
    "RateSample",
    "RateSampler",
    "RewardMerger",
    "Settings",
    "SmoothingPolicy",
    "SourceFormat",
    "UnitFormat",
    "annualize",
    "annualize_sample",
    "apr_to_apy",
    "assemble_tvl",
    "bps_to_percent",
    "build_records",
    "check_identity",
    "collect_pools",
    "compound_apy",
    "exchange_rate_tvl",
    "fetch_pools",
    "format_chain",
    "format_symbol",
    "from_decimals",
    "get_adapter",
    "linear_apy",
    "load_config",
    "make_pool_id",
    "normalize",
    "per_block_rate_to_apy",
    "per_second_rate_to_apy",
    "ray_to_percent",
    "safe_div",
    "share_vault_tvl",
    "summarize_by_chain",
    "validate_record",
]
