"""Merge third-party incentive registry rewards into pool records."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import replace
import logging
import math

from .core.constants import chain_info
from .core.models import PoolRecord
from .sources.merkl import LIVE, IncentiveRegistry, Opportunity

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

AddressOf = Callable[[PoolRecord], str | None]


def default_address(record: PoolRecord) -> str | None:
    """Address prefix of a ``<address>-<chain>`` pool id."""

    head = record.pool_id.split("-", 1)[0]
    return head if head.startswith("0x") and len(head) == 42 else None


def combine(opportunities: Sequence[Opportunity]) -> tuple[float, tuple[str, ...]]:
    """Sum APRs of concurrent campaigns and union their reward tokens in order."""

    apr = math.fsum(o.apr for o in opportunities if math.isfinite(o.apr))
    tokens: dict[str, None] = {}
    for o in opportunities:
        for token in o.reward_tokens:
            tokens.setdefault(token, None)
    return apr, tuple(tokens)


class RewardMerger:
    """Look pools up in an incentive registry and attach live reward APY.

    Records that already carry adapter-sourced reward data are left as they
    are. Lookups run ``batch_size`` at a time; a failed lookup only means
    "no registry reward" for that pool.
    """

    def __init__(self, registry: IncentiveRegistry, *, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        self._registry = registry
        self.batch_size = max(1, batch_size)

    async def _lookup(self, record: PoolRecord, address: str) -> list[Opportunity]:
        info = chain_info(record.chain)
        if info is None:
            logger.debug("No chain id for %s; skipping registry lookup", record.chain)
            return []
        try:
            return await self._registry.get_opportunities(info.chain_id, address, status=LIVE)
        except Exception as exc:
            logger.warning("Registry lookup failed for %s: %s", record.pool_id, exc)
            return []

    def _apply(self, record: PoolRecord, opportunities: Sequence[Opportunity]) -> PoolRecord:
        if not opportunities:
            return record
        apr, tokens = combine(opportunities)
        if apr <= 0 or not tokens:
            return record
        return replace(record, apy_reward=apr, reward_tokens=tokens)

    async def merge(
        self, records: Sequence[PoolRecord], address_of: AddressOf = default_address
    ) -> list[PoolRecord]:
        out = list(records)
        pending: list[tuple[int, str]] = []
        for i, record in enumerate(out):
            if record.has_native_reward:
                continue
            address = address_of(record)
            if address:
                pending.append((i, address))

        for start in range(0, len(pending), self.batch_size):
            batch = pending[start : start + self.batch_size]
            results = await asyncio.gather(*(self._lookup(out[i], addr) for i, addr in batch))
            for (i, _), opportunities in zip(batch, results):
                out[i] = self._apply(out[i], opportunities)
        merged = sum(1 for a, b in zip(records, out) if a is not b)
        if merged:
            logger.info("Merged registry rewards into %d of %d pools", merged, len(out))
        return out


__all__ = ["DEFAULT_BATCH_SIZE", "RewardMerger", "combine", "default_address"]
