"""Unit normalization for raw upstream numbers.

Upstream sources report rates and balances in many encodings: fixed-point
integers with token decimals, RAY (1e27) scaled annual rates, basis points,
fractions and per-block or per-second rates. The helpers here convert them
to plain floats, either a dimensionless ratio or a percentage.

None of the helpers raise on a zero denominator; they return ``0.0`` so that
``NaN`` or ``inf`` never leaks into a record.
"""

from __future__ import annotations

from enum import Enum
import math
import re

from .core.constants import RAY, SECONDS_PER_YEAR, blocks_per_year, chain_info


class UnitFormat(Enum):
    DECIMALS = "decimals"
    RAY = "ray"
    BASIS_POINTS = "bps"
    PERCENT = "percent"
    FRACTION = "fraction"


def _coerce_float(value: object) -> float:
    """Best-effort conversion to ``float`` returning ``nan`` on failure."""

    try:
        return float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return float("nan")


def safe_div(numerator: float | int, denominator: float | int) -> float:
    """Divide, returning ``0.0`` for a zero or non-finite denominator."""

    if isinstance(numerator, int) and isinstance(denominator, int):
        # exact for big integers (uint256 balances)
        if denominator == 0:
            return 0.0
        return numerator / denominator
    num = _coerce_float(numerator)
    den = _coerce_float(denominator)
    if den == 0.0 or not math.isfinite(den) or not math.isfinite(num):
        return 0.0
    return num / den


def from_decimals(raw: int | float | str, decimals: int) -> float:
    """``raw / 10**decimals``; string inputs are parsed as integers first."""

    if isinstance(raw, str):
        raw = int(raw) if raw.strip().lstrip("-").isdigit() else _coerce_float(raw)
    return safe_div(raw, 10 ** int(decimals))


def ray_to_percent(raw: int | float | str) -> float:
    """RAY-scaled annual rate to percent, e.g. ``5e25 -> 5.0``."""

    if isinstance(raw, int):
        return raw * 100 / RAY
    return from_decimals(raw, 27) * 100.0


def bps_to_percent(raw: int | float) -> float:
    return _coerce_float(raw) / 100.0


def fraction_to_percent(raw: int | float) -> float:
    return _coerce_float(raw) * 100.0


def per_period_rate_to_apy(rate: float, periods_per_year: float) -> float:
    """Compound a per-block or per-second rate (as a fraction) into an APY percent."""

    rate = _coerce_float(rate)
    if not math.isfinite(rate) or periods_per_year <= 0 or rate <= -1.0:
        return 0.0
    try:
        apy = (math.pow(1.0 + rate, periods_per_year) - 1.0) * 100.0
    except OverflowError:
        return 0.0
    return apy if math.isfinite(apy) else 0.0


def per_block_rate_to_apy(rate: float, chain: str | int) -> float:
    return per_period_rate_to_apy(rate, blocks_per_year(chain))


def per_second_rate_to_apy(rate: float) -> float:
    return per_period_rate_to_apy(rate, SECONDS_PER_YEAR)


def apr_to_apy(apr: float, periods_per_year: float) -> float:
    """Convert a simple APR percent to an APY percent compounded ``periods_per_year`` times."""

    apr = _coerce_float(apr)
    if not math.isfinite(apr) or periods_per_year <= 0:
        return 0.0
    return per_period_rate_to_apy(apr / 100.0 / periods_per_year, periods_per_year)


def normalize(raw: int | float | str, fmt: UnitFormat, *, decimals: int = 0) -> float:
    """Dispatch on ``fmt``. ``DECIMALS`` yields a ratio, the rest percentages."""

    if fmt is UnitFormat.DECIMALS:
        return from_decimals(raw, decimals)
    if fmt is UnitFormat.RAY:
        return ray_to_percent(raw)
    if fmt is UnitFormat.BASIS_POINTS:
        return bps_to_percent(_coerce_float(raw))
    if fmt is UnitFormat.FRACTION:
        return fraction_to_percent(_coerce_float(raw))
    return _coerce_float(raw)


def format_chain(chain: str | int) -> str:
    """Canonical display spelling of a chain name or id."""

    info = chain_info(chain)
    if info is not None:
        return info.name
    text = str(chain).strip()
    return text[:1].upper() + text[1:]


_SEPARATORS = re.compile(r"[_+ /]")
_BRIDGED = re.compile(r"\.(e|E)\b")
_PARENS = re.compile(r"\(.*\)")


def format_symbol(symbol: str) -> str:
    symbol = _SEPARATORS.sub("-", symbol)
    symbol = _BRIDGED.sub("", symbol)
    symbol = _PARENS.sub("", symbol)
    return symbol.strip().strip("-").upper()


__all__ = [
    "UnitFormat",
    "apr_to_apy",
    "bps_to_percent",
    "format_chain",
    "format_symbol",
    "fraction_to_percent",
    "from_decimals",
    "normalize",
    "per_block_rate_to_apy",
    "per_period_rate_to_apy",
    "per_second_rate_to_apy",
    "ray_to_percent",
    "safe_div",
]
