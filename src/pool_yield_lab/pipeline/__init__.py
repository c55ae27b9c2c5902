"""Pipeline driver running protocol adapters into a validated record batch."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Iterable, Sequence
from contextlib import asynccontextmanager
import logging
from typing import Any, Protocol

from ..config import Settings
from ..core import PoolRecord, PoolRecordRepository, SourceFormat
from ..records import build_records
from ..rewards import RewardMerger, default_address
from .context import AdapterContext

logger = logging.getLogger(__name__)

PoolResult = PoolRecord | Sequence[PoolRecord] | None


class Adapter(Protocol):
    """One protocol integration."""

    project: str
    sources: frozenset[SourceFormat]
    merge_registry_rewards: bool

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]: ...


async def collect_pools(tasks: Iterable[tuple[str, Awaitable[PoolResult]]]) -> list[PoolRecord]:
    """Await per-pool coroutines jointly, excluding any pool whose chain fails.

    ``tasks`` pairs a label (used in the log line) with a coroutine returning
    a record, a list of records, or ``None`` for "nothing to publish".
    """

    items = list(tasks)
    if not items:
        return []
    results = await asyncio.gather(*(coro for _, coro in items), return_exceptions=True)
    out: list[PoolRecord] = []
    for (label, _), res in zip(items, results):
        if isinstance(res, Exception):
            logger.warning("Excluding pool %s: %s: %s", label, type(res).__name__, res)
        elif isinstance(res, BaseException):
            raise res
        elif res is None:
            continue
        elif isinstance(res, PoolRecord):
            out.append(res)
        else:
            out.extend(res)
    return out


class Pipeline:
    """Run adapters concurrently, merge registry rewards and filter the records."""

    def __init__(
        self,
        adapters: Sequence[Adapter],
        settings: Settings | None = None,
        *,
        context: AdapterContext | None = None,
    ) -> None:
        self._adapters: list[Adapter] = list(adapters)
        self.settings = settings or (context.settings if context else Settings())
        self._context = context

    @asynccontextmanager
    async def _open_context(self) -> AsyncIterator[AdapterContext]:
        if self._context is not None:
            yield self._context
            return
        async with AdapterContext.open(self.settings) as ctx:
            yield ctx

    async def run_adapter(self, adapter: Adapter, ctx: AdapterContext) -> list[PoolRecord]:
        project = adapter.project
        try:
            raw = await adapter.fetch(ctx)
        except Exception as exc:
            logger.warning("Adapter %s failed: %s", project, exc)
            return []
        if getattr(adapter, "merge_registry_rewards", False):
            merger = RewardMerger(ctx.registry, batch_size=self.settings.reward_batch_size)
            raw = await merger.merge(raw, getattr(adapter, "reward_address", default_address))
        records = build_records(raw, project=project, min_tvl_usd=self.settings.min_tvl_usd)
        logger.info("%s: kept %d of %d pools", project, len(records), len(raw))
        return records

    async def run_async(self) -> PoolRecordRepository:
        async with self._open_context() as ctx:
            results = await asyncio.gather(*(self.run_adapter(a, ctx) for a in self._adapters))
        repo = PoolRecordRepository()
        for records in results:
            repo.extend(records)
        return repo.sorted_by_tvl()

    def run(self) -> PoolRecordRepository:
        return asyncio.run(self.run_async())


def fetch_pools(adapter: Adapter, settings: Settings | None = None) -> list[dict[str, Any]]:
    """Per-integration entry point: the published record array for one adapter."""

    return Pipeline([adapter], settings).run().to_json()


__all__ = ["Adapter", "AdapterContext", "Pipeline", "collect_pools", "fetch_pools"]
