"""In-memory collaborators standing in for HTTP, RPC, price and registry sources."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pool_yield_lab.config import Settings
from pool_yield_lab.core.errors import MalformedUpstream, SourceUnavailable
from pool_yield_lab.pipeline.context import AdapterContext
from pool_yield_lab.sampling import RateSampler
from pool_yield_lab.sources import Opportunity, SubgraphClient, price_key

NOW = 1_700_000_000.0


def _resolve(value: Any, *args: Any) -> Any:
    if isinstance(value, BaseException):
        raise value
    if callable(value):
        return value(*args)
    return value


class FakeHttp:
    """Answers from ``routes`` keyed by URL; unknown URLs are unavailable."""

    def __init__(self, routes: Mapping[str, Any] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, str, Any]] = []

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        self.calls.append(("GET", url, params))
        if url not in self.routes:
            raise SourceUnavailable(f"no route for {url}", source=url)
        return _resolve(self.routes[url], params)

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        self.calls.append(("POST", url, payload))
        if url not in self.routes:
            raise SourceUnavailable(f"no route for {url}", source=url)
        return _resolve(self.routes[url], payload)


class FakeChain:
    """Contract reads keyed by ``(target, function)`` or ``(target, function, block)``.

    A value may be a callable taking ``(params, block)``.
    """

    def __init__(self, reads: Mapping[tuple, Any] | None = None) -> None:
        self.reads = {self._key(k): v for k, v in (reads or {}).items()}
        self.calls: list[tuple[str, str, str, tuple, int | None]] = []

    @staticmethod
    def _key(key: tuple) -> tuple:
        return (str(key[0]).lower(), *key[1:])

    async def call(
        self,
        target: str,
        abi: dict[str, Any],
        chain: str,
        params: Sequence[Any] = (),
        block: int | None = None,
    ) -> Any:
        name = abi["name"]
        self.calls.append((target, name, chain, tuple(params), block))
        target = target.lower()
        for key in ((target, name, block), (target, name)):
            if key in self.reads:
                value = self.reads[key]
                if callable(value) and not isinstance(value, BaseException):
                    return value(tuple(params), block)
                return _resolve(value)
        raise MalformedUpstream(f"{name} reverted on {target}", source=chain)

    async def multi_call(
        self,
        abi: dict[str, Any],
        calls: Sequence[tuple[str, Sequence[Any]]],
        chain: str,
        block: int | None = None,
        permit_failure: bool = False,
    ) -> list[Any]:
        out = []
        for target, params in calls:
            try:
                out.append(await self.call(target, abi, chain, params, block))
            except Exception:
                if not permit_failure:
                    raise
                out.append(None)
        return out


class FakePrices:
    """Prices by ``chain:address`` key (addresses compared lower-cased)."""

    def __init__(self, prices: Mapping[str, float] | None = None) -> None:
        self.prices = {k.lower(): v for k, v in (prices or {}).items()}

    async def get_prices_by_key(self, keys: Iterable[str]) -> dict[str, float]:
        return {k: self.prices[k.lower()] for k in keys if k.lower() in self.prices}

    async def get_prices(self, addresses: Sequence[str], chain: str) -> dict[str, float]:
        out = {}
        for addr in addresses:
            key = price_key(chain, addr)
            if key in self.prices:
                out[addr.lower()] = self.prices[key]
        return out


class FakeBlocks:
    """One block per elapsed day: ``head - days_ago``; windows listed in ``fail`` raise."""

    def __init__(self, head: int = 1_000, *, fail: Iterable[float] = ()) -> None:
        self.head = head
        self.fail = set(fail)
        self.calls: list[tuple[int, str]] = []

    async def lookup_block(self, timestamp: int, chain: str) -> int:
        self.calls.append((timestamp, chain))
        days = round((NOW - timestamp) / 86_400, 6)
        if days in self.fail:
            raise SourceUnavailable(f"no block for {days}d", source=chain)
        return self.head - int(days)


class FakeRegistry:
    def __init__(
        self,
        opportunities: Mapping[str, Sequence[Opportunity]] | None = None,
        *,
        fail: Iterable[str] = (),
    ) -> None:
        self.opportunities = {k.lower(): list(v) for k, v in (opportunities or {}).items()}
        self.fail = {f.lower() for f in fail}
        self.calls: list[tuple[int, str, str]] = []

    async def get_opportunities(self, chain_id: int, identifier: str, status: str = "LIVE") -> list[Opportunity]:
        self.calls.append((chain_id, identifier, status))
        if identifier.lower() in self.fail:
            raise SourceUnavailable("registry down")
        return self.opportunities.get(identifier.lower(), [])


def make_context(
    *,
    settings: Settings | None = None,
    http: FakeHttp | None = None,
    chain: FakeChain | None = None,
    prices: FakePrices | None = None,
    blocks: FakeBlocks | None = None,
    registry: FakeRegistry | None = None,
    clock: Callable[[], float] = lambda: NOW,
) -> AdapterContext:
    settings = settings or Settings()
    http = http or FakeHttp()
    blocks = blocks or FakeBlocks()
    return AdapterContext(
        settings=settings,
        http=http,
        chain=chain or FakeChain(),
        prices=prices or FakePrices(),
        blocks=blocks,
        sampler=RateSampler(blocks, windows=settings.windows, clock=clock),
        subgraph=SubgraphClient(http),
        registry=registry or FakeRegistry(),
    )
