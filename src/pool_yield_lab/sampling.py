"""Sample a growing metric now and at historical reference points.

Historical points are resolved by mapping ``now - days`` to a block height
through a :class:`~pool_yield_lab.sources.BlockResolver` and re-reading the
same metric at that height. A window whose block or read fails is recorded
as missing; it is never filled with a default value.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass, field
import logging
import time

from .core.constants import SECONDS_PER_DAY
from .core.errors import InsufficientHistory
from .core.models import RateObservation
from .sources.blocks import BlockResolver

logger = logging.getLogger(__name__)

# read(block) -> raw metric; block is None for the latest state
ReadFn = Callable[[int | None], Awaitable[int | float]]


@dataclass(frozen=True)
class RateSample:
    """The "now" observation plus whichever historical windows resolved."""

    chain: str
    current: RateObservation
    history: Mapping[float, RateObservation] = field(default_factory=dict)
    missing: Mapping[float, str] = field(default_factory=dict)

    def at(self, days: float) -> RateObservation | None:
        return self.history.get(days)

    def require(self, days: float) -> RateObservation:
        obs = self.history.get(days)
        if obs is None:
            reason = self.missing.get(days, "window not sampled")
            raise InsufficientHistory(
                f"no {days:g}d observation on {self.chain}: {reason}", window_days=days
            )
        return obs

    @property
    def windows(self) -> list[float]:
        return sorted(self.history)


class RateSampler:
    def __init__(
        self,
        blocks: BlockResolver,
        *,
        windows: Sequence[float] = (1, 7),
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._blocks = blocks
        self.windows = tuple(windows)
        self.clock = clock

    def reference_timestamp(self, days: float, now: float | None = None) -> int:
        now = self.clock() if now is None else now
        return int(now - days * SECONDS_PER_DAY)

    async def _lookup(self, chain: str, days: float, now: float) -> int:
        try:
            return await self._blocks.lookup_block(self.reference_timestamp(days, now), chain)
        except Exception as exc:
            raise InsufficientHistory(
                f"block lookup {days:g}d ago on {chain} failed: {exc}", window_days=days
            ) from exc

    async def reference_blocks(
        self, chain: str, windows: Sequence[float] | None = None
    ) -> dict[float, int | None]:
        """Resolve every window to a block once, for reuse across pools on one chain."""

        windows = tuple(windows or self.windows)
        now = self.clock()
        results = await asyncio.gather(
            *(self._lookup(chain, days, now) for days in windows), return_exceptions=True
        )
        out: dict[float, int | None] = {}
        for days, res in zip(windows, results):
            if isinstance(res, Exception):
                logger.warning("%s", res)
                out[days] = None
            else:
                out[days] = res
        return out

    async def sample(
        self,
        chain: str,
        read: ReadFn,
        *,
        decimals: int = 0,
        windows: Sequence[float] | None = None,
        blocks: Mapping[float, int | None] | None = None,
    ) -> RateSample:
        """Read the metric now and at each window; all reads run concurrently.

        Raises whatever the "now" read raises. Historical failures only mark
        their window as missing.
        """

        windows = tuple(windows or self.windows)
        now = self.clock()

        async def _historical(days: float) -> RateObservation:
            if blocks is not None:
                block = blocks.get(days)
                if block is None:
                    raise InsufficientHistory(
                        f"no block {days:g}d ago on {chain}", window_days=days
                    )
            else:
                block = await self._lookup(chain, days, now)
            raw = await read(block)
            return RateObservation(
                raw_value=raw,
                decimals=decimals,
                timestamp=self.reference_timestamp(days, now),
                block=block,
            )

        async def _current() -> RateObservation:
            raw = await read(None)
            return RateObservation(raw_value=raw, decimals=decimals, timestamp=int(now))

        current, *past = await asyncio.gather(
            _current(), *(_historical(d) for d in windows), return_exceptions=True
        )
        if isinstance(current, BaseException):
            raise current

        history: dict[float, RateObservation] = {}
        missing: dict[float, str] = {}
        for days, res in zip(windows, past):
            if isinstance(res, BaseException):
                missing[days] = str(res)
                logger.warning("Insufficient history on %s for %gd window: %s", chain, days, res)
            else:
                history[days] = res
        return RateSample(chain=chain, current=current, history=history, missing=missing)


__all__ = ["RateSample", "RateSampler", "ReadFn"]
