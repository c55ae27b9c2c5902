"""Validate and filter built pool records before they are published.

Checks run in a fixed order: required fields, reward-token consistency,
finiteness, project namespace, TVL threshold, duplicate ids. A failing
record is dropped and logged; :func:`build_records` never raises on an
individual record.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
import logging
import math
from typing import Any

from .core.errors import InvariantViolation
from .core.models import PoolRecord

logger = logging.getLogger(__name__)

_REQUIRED_TEXT = ("pool_id", "chain", "project", "symbol")
_APY_FIELDS = ("apy_base", "apy_reward", "apy")


def _is_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_record(record: PoolRecord, *, project: str | None = None) -> list[str]:
    """Return every invariant the record violates (empty when valid)."""

    violations: list[str] = []

    for name in _REQUIRED_TEXT:
        value = getattr(record, name)
        if not isinstance(value, str) or not value.strip():
            violations.append(f"missing {name}")
    if record.tvl_usd is None:
        violations.append("missing tvl_usd")
    if all(getattr(record, name) is None for name in _APY_FIELDS):
        violations.append("no apy_base, apy_reward or apy")

    if record.apy_reward is not None and _is_number(record.apy_reward) and record.apy_reward > 0:
        if not record.reward_tokens:
            violations.append("apy_reward > 0 without reward_tokens")

    for name, value in record.numeric_values().items():
        if not _is_number(value) or not math.isfinite(value):
            violations.append(f"non-finite {name}: {value!r}")
    if _is_number(record.tvl_usd) and record.tvl_usd < 0:
        violations.append(f"negative tvl_usd: {record.tvl_usd!r}")

    if project is not None and record.project != project:
        violations.append(f"project {record.project!r} outside namespace {project!r}")

    return violations


def ensure_valid(record: PoolRecord, *, project: str | None = None) -> PoolRecord:
    violations = validate_record(record, project=project)
    if violations:
        raise InvariantViolation(f"invalid record {record.pool_id!r}", violations)
    return record


def build_records(
    candidates: Iterable[PoolRecord | Mapping[str, Any]],
    *,
    project: str | None = None,
    min_tvl_usd: float = 0.0,
) -> list[PoolRecord]:
    """Filter ``candidates`` down to publishable records.

    Mappings are accepted in the published JSON shape (``poolId``,
    ``tvlUsd`` ...). Records at or below ``min_tvl_usd`` are dropped, so a
    zero TVL never reaches the output.
    """

    out: list[PoolRecord] = []
    seen: set[str] = set()
    for candidate in candidates:
        try:
            record = (
                candidate
                if isinstance(candidate, PoolRecord)
                else PoolRecord.from_dict(dict(candidate))
            )
        except TypeError as exc:
            logger.debug("Dropping malformed candidate %r: %s", candidate, exc)
            continue

        violations = validate_record(record, project=project)
        if violations:
            logger.debug("Dropping pool %s: %s", record.pool_id, "; ".join(violations))
            continue
        if record.tvl_usd <= min_tvl_usd:
            logger.debug("Dropping pool %s: tvl %.2f <= %.2f", record.pool_id, record.tvl_usd, min_tvl_usd)
            continue
        if record.pool_id in seen:
            logger.debug("Dropping duplicate pool id %s", record.pool_id)
            continue
        seen.add(record.pool_id)
        out.append(record)
    return out


def check_identity(
    records: Iterable[PoolRecord], published_ids: Iterable[str]
) -> tuple[set[str], set[str]]:
    """Compare this run's ids with a previously published set.

    Returns ``(missing, new)``. A published id that disappears while a new
    one shows up is the signature of a changed id derivation, which orphans
    downstream history; it is logged, not repaired.
    """

    current = {r.pool_id for r in records}
    published = set(published_ids)
    missing = published - current
    new = current - published
    if missing and new:
        logger.warning(
            "Pool ids changed: %d published ids missing (%s), %d new",
            len(missing),
            ", ".join(sorted(missing)[:5]),
            len(new),
        )
    return missing, new


__all__ = ["build_records", "check_identity", "ensure_valid", "validate_record"]
