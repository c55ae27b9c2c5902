"""In-memory repository for :class:`PoolRecord` batches."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

import pandas as pd

from .models import PoolRecord


class PoolRecordRepository:
    """Lightweight in-memory collection with pandas export."""

    def __init__(self, records: Iterable[PoolRecord] | None = None) -> None:
        self._records: list[PoolRecord] = list(records) if records else []

    def add(self, record: PoolRecord) -> None:
        self._records.append(record)

    def extend(self, items: Iterable[PoolRecord]) -> None:
        self._records.extend(items)

    def filter(
        self,
        *,
        min_tvl: float = 0.0,
        chains: list[str] | None = None,
        projects: list[str] | None = None,
    ) -> "PoolRecordRepository":
        res: list[PoolRecord] = []
        for record in self._records:
            if record.tvl_usd < min_tvl:
                continue
            if chains and record.chain not in chains:
                continue
            if projects and record.project not in projects:
                continue
            res.append(record)
        return PoolRecordRepository(res)

    def sorted_by_tvl(self, descending: bool = True) -> "PoolRecordRepository":
        return PoolRecordRepository(
            sorted(self._records, key=lambda r: r.tvl_usd, reverse=descending)
        )

    def ids(self) -> list[str]:
        return [record.pool_id for record in self._records]

    def to_json(self) -> list[dict[str, Any]]:
        return [record.to_dict() for record in self._records]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.to_json())

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[PoolRecord]:
        return iter(self._records)


def summarize_by_chain(repo: PoolRecordRepository) -> pd.DataFrame:
    """Pool count, TVL and TVL-weighted base APY per chain."""

    df = repo.to_dataframe()
    if df.empty:
        return df
    if "apyBase" not in df.columns:
        df["apyBase"] = float("nan")
    df["_weighted"] = df["apyBase"].fillna(0.0) * df["tvlUsd"]
    g = (
        df.groupby("chain")
        .agg(pools=("poolId", "count"), tvl=("tvlUsd", "sum"), weighted=("_weighted", "sum"))
        .reset_index()
    )
    g["apy_base_wavg"] = g["weighted"] / g["tvl"].where(g["tvl"] > 0)
    return g.drop(columns="weighted").sort_values("tvl", ascending=False).reset_index(drop=True)


__all__ = ["PoolRecordRepository", "summarize_by_chain"]
