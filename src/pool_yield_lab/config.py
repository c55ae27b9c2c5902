"""Runtime configuration: built-in defaults, a TOML file, then environment overrides."""

from __future__ import annotations

from collections.abc import Mapping
import copy
from dataclasses import dataclass, field
import logging
import os
from pathlib import Path
import tomllib
from typing import Any, cast

from .annualize import SmoothingPolicy
from .sources.blocks import BLOCK_SOURCES, DEFAULT_BLOCKS_URL
from .sources.merkl import DEFAULT_MERKL_URL
from .sources.prices import DEFAULT_PRICES_URL
from .sources.retry import RetryPolicy

logger = logging.getLogger(__name__)

ENV_PREFIX = "POOL_YIELD_"

DEFAULTS: dict[str, Any] = {
    "http": {"timeout": 30.0},
    "retry": {"max_attempts": 3, "backoff": 0.5, "max_delay": 8.0},
    "rewards": {"batch_size": 5},
    "sampling": {"windows": [1, 7], "smoothing": "latest"},
    "output": {"min_tvl_usd": 0.0},
    "endpoints": {
        "prices": DEFAULT_PRICES_URL,
        "blocks": DEFAULT_BLOCKS_URL,
        "merkl": DEFAULT_MERKL_URL,
    },
    "rpc": {},
    "block_sources": {},
    "subgraphs": {},
}


def load_config(path: str | Path | None = None) -> dict[str, Any]:
    """Load configuration from a TOML file and merge with defaults.

    Parameters
    ----------
    path:
        Optional path to a configuration file. When ``None`` the
        ``POOL_YIELD_CONFIG`` environment variable is consulted; when that is
        unset too, or the file is missing, the built-in defaults are used.

    Returns
    -------
    dict[str, Any]
        Configuration dictionary with file and environment overrides applied.
    """

    cfg = copy.deepcopy(DEFAULTS)
    raw_path = path or os.getenv(f"{ENV_PREFIX}CONFIG")
    cfg_path = Path(raw_path) if raw_path else None

    if cfg_path and cfg_path.is_file():
        with open(cfg_path, "rb") as f:
            file_cfg = tomllib.load(f)
        for k, v in file_cfg.items():
            if isinstance(v, dict) and k in cfg and isinstance(cfg[k], dict):
                cast(dict, cfg[k]).update(v)
            else:
                cfg[k] = v
    elif cfg_path:
        logger.warning("Config file not found at %s. Using defaults.", cfg_path)

    _apply_env(cfg, os.environ)
    return cfg


def _apply_env(cfg: dict[str, Any], env: Mapping[str, str]) -> None:
    rpc_prefix = f"{ENV_PREFIX}RPC_"
    for key, value in env.items():
        if key.startswith(rpc_prefix) and value:
            cfg.setdefault("rpc", {})[key[len(rpc_prefix) :].lower()] = value

    if min_tvl := env.get(f"{ENV_PREFIX}MIN_TVL"):
        try:
            cfg["output"]["min_tvl_usd"] = float(min_tvl)
        except ValueError:
            logger.warning("Ignoring non-numeric %sMIN_TVL=%r", ENV_PREFIX, min_tvl)
    if attempts := env.get(f"{ENV_PREFIX}MAX_ATTEMPTS"):
        try:
            cfg["retry"]["max_attempts"] = int(attempts)
        except ValueError:
            logger.warning("Ignoring non-integer %sMAX_ATTEMPTS=%r", ENV_PREFIX, attempts)


def _block_sources(raw: Mapping[str, Any]) -> dict[str, str]:
    """Chain slug to block lookup backend; only the listed chains leave the default."""

    out = {}
    for chain, source in raw.items():
        source = str(source).lower()
        if source not in BLOCK_SOURCES:
            raise ValueError(f"unknown block source {source!r} for {chain}; expected one of {BLOCK_SOURCES}")
        out[str(chain).lower()] = source
    return out


@dataclass(frozen=True)
class Settings:
    """Typed view over the configuration dictionary."""

    http_timeout: float = 30.0
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    reward_batch_size: int = 5
    windows: tuple[float, ...] = (1, 7)
    smoothing: SmoothingPolicy = SmoothingPolicy.LATEST
    min_tvl_usd: float = 0.0
    prices_url: str = DEFAULT_PRICES_URL
    blocks_url: str = DEFAULT_BLOCKS_URL
    merkl_url: str = DEFAULT_MERKL_URL
    rpc_urls: Mapping[str, str] = field(default_factory=dict)
    block_sources: Mapping[str, str] = field(default_factory=dict)
    subgraphs: Mapping[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, cfg: Mapping[str, Any]) -> "Settings":
        retry = cfg.get("retry", {})
        sampling = cfg.get("sampling", {})
        endpoints = cfg.get("endpoints", {})
        return cls(
            http_timeout=float(cfg.get("http", {}).get("timeout", 30.0)),
            retry=RetryPolicy(
                max_attempts=int(retry.get("max_attempts", 3)),
                backoff=float(retry.get("backoff", 0.5)),
                max_delay=float(retry.get("max_delay", 8.0)),
            ),
            reward_batch_size=int(cfg.get("rewards", {}).get("batch_size", 5)),
            windows=tuple(float(w) for w in sampling.get("windows", (1, 7))),
            smoothing=SmoothingPolicy(str(sampling.get("smoothing", "latest")).lower()),
            min_tvl_usd=float(cfg.get("output", {}).get("min_tvl_usd", 0.0)),
            prices_url=str(endpoints.get("prices", DEFAULT_PRICES_URL)),
            blocks_url=str(endpoints.get("blocks", DEFAULT_BLOCKS_URL)),
            merkl_url=str(endpoints.get("merkl", DEFAULT_MERKL_URL)),
            rpc_urls={str(k).lower(): str(v) for k, v in cfg.get("rpc", {}).items()},
            block_sources=_block_sources(cfg.get("block_sources", {})),
            subgraphs={str(k): str(v) for k, v in cfg.get("subgraphs", {}).items()},
        )

    @classmethod
    def load(cls, path: str | Path | None = None) -> "Settings":
        return cls.from_mapping(load_config(path))


__all__ = ["DEFAULTS", "ENV_PREFIX", "Settings", "load_config"]
