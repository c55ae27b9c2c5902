"""Shared defaults for protocol adapters."""

from __future__ import annotations

from ..core import PoolRecord, SourceFormat
from ..pipeline.context import AdapterContext
from ..rewards import default_address


class AdapterBase:
    """Adapters override ``fetch``; the rest are defaults the pipeline reads."""

    project: str = ""
    sources: frozenset[SourceFormat] = frozenset()
    merge_registry_rewards: bool = False
    url: str | None = None

    def reward_address(self, record: PoolRecord) -> str | None:
        return default_address(record)

    async def fetch(self, ctx: AdapterContext) -> list[PoolRecord]:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(project={self.project!r})"


__all__ = ["AdapterBase"]
