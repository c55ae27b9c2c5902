"""Turn a rate-of-change over an observed interval into an annualized percentage."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
import math

from .core.constants import DAYS_PER_YEAR, DAYS_PER_YEAR_JULIAN
from .sampling import RateSample


class CompoundingModel(Enum):
    LINEAR = "linear"
    COMPOUND = "compound"


class SmoothingPolicy(Enum):
    """Which sampled window feeds ``apy_base``."""

    LATEST = "latest"  # shortest window
    LONGEST = "longest"
    MEAN = "mean"  # mean over windows with history


def _finite_or_zero(value: float) -> float:
    return value if math.isfinite(value) else 0.0


def linear_apy(
    now: float, past: float, interval_days: float, *, days_per_year: float = DAYS_PER_YEAR
) -> float:
    """``(now - past) / past * (days_per_year / interval_days) * 100``."""

    try:
        if past == 0 or interval_days <= 0:
            return 0.0
        return _finite_or_zero((now - past) / past * (days_per_year / interval_days) * 100.0)
    except (TypeError, OverflowError):
        return 0.0


def compound_apy(
    now: float,
    past: float,
    interval_days: float,
    *,
    days_per_year: float = DAYS_PER_YEAR_JULIAN,
) -> float:
    """``((now / past) ** (days_per_year / interval_days) - 1) * 100``."""

    try:
        if past == 0 or interval_days <= 0:
            return 0.0
        ratio = now / past
        if not math.isfinite(ratio) or ratio <= 0:
            return 0.0
        return _finite_or_zero((math.pow(ratio, days_per_year / interval_days) - 1.0) * 100.0)
    except (TypeError, OverflowError):
        return 0.0


def annualize(
    now: float,
    past: float,
    interval_days: float,
    model: CompoundingModel = CompoundingModel.LINEAR,
    *,
    days_per_year: float | None = None,
) -> float:
    if model is CompoundingModel.COMPOUND:
        return compound_apy(
            now, past, interval_days, days_per_year=days_per_year or DAYS_PER_YEAR_JULIAN
        )
    return linear_apy(now, past, interval_days, days_per_year=days_per_year or DAYS_PER_YEAR)


@dataclass(frozen=True)
class AnnualizedYield:
    """APY per sampled window (days -> percent) plus the policy picking ``apy_base``."""

    windows: tuple[float, ...]
    by_window: Mapping[float, float] = field(default_factory=dict)
    smoothing: SmoothingPolicy = SmoothingPolicy.LATEST

    def window(self, days: float) -> float | None:
        return self.by_window.get(days)

    @property
    def apy_base(self) -> float | None:
        if not self.windows:
            return None
        if self.smoothing is SmoothingPolicy.MEAN:
            values = [self.by_window[d] for d in self.windows if d in self.by_window]
            return math.fsum(values) / len(values) if values else None
        if self.smoothing is SmoothingPolicy.LONGEST:
            return self.by_window.get(max(self.windows))
        return self.by_window.get(min(self.windows))

    @property
    def apy_base_7d(self) -> float | None:
        return self.by_window.get(7)


def annualize_sample(
    sample: RateSample,
    *,
    model: CompoundingModel = CompoundingModel.LINEAR,
    days_per_year: float | None = None,
    smoothing: SmoothingPolicy = SmoothingPolicy.LATEST,
    windows: tuple[float, ...] | None = None,
) -> AnnualizedYield:
    """Annualize every window of ``sample`` that has history.

    Windows without history are left out of ``by_window`` rather than set to
    zero, so their yield reads as unavailable.
    """

    requested = tuple(windows) if windows else tuple(sorted({*sample.history, *sample.missing}))
    now = sample.current.value
    by_window = {
        days: annualize(now, obs.value, days, model, days_per_year=days_per_year)
        for days, obs in sample.history.items()
        if days in requested
    }
    return AnnualizedYield(windows=requested, by_window=by_window, smoothing=smoothing)


__all__ = [
    "AnnualizedYield",
    "CompoundingModel",
    "SmoothingPolicy",
    "annualize",
    "annualize_sample",
    "compound_apy",
    "linear_apy",
]
