"""Async JSON-over-HTTP client shared by the REST, price, block and registry sources."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import aiohttp

from ..core.errors import HttpStatusError, MalformedUpstream
from .retry import RetryPolicy

logger = logging.getLogger(__name__)


class HttpClient(Protocol):
    """What sources need from an HTTP client."""

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any: ...

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any: ...


class JsonHttpClient:
    """aiohttp wrapper returning decoded JSON, with bounded retry per request."""

    def __init__(
        self,
        session: aiohttp.ClientSession | None = None,
        *,
        timeout: float = 30.0,
        retry: RetryPolicy | None = None,
    ) -> None:
        self._session = session
        self._owns_session = session is None
        self.timeout = timeout
        self.retry = retry or RetryPolicy()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )
        return self._session

    async def close(self) -> None:
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def __aenter__(self) -> "JsonHttpClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def _request_once(self, method: str, url: str, **kwargs: Any) -> Any:
        session = self._get_session()
        async with session.request(method, url, **kwargs) as resp:
            if resp.status >= 400:
                text = await resp.text()
                raise HttpStatusError(
                    f"{method} {url} returned {resp.status}: {text[:200]}",
                    status=resp.status,
                    source=url,
                )
            try:
                return await resp.json(content_type=None)
            except ValueError as exc:
                raise MalformedUpstream(f"{method} {url} returned invalid JSON", source=url) from exc

    async def get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        return await self.retry.run(
            lambda: self._request_once("GET", url, params=params),
            description=f"GET {url}",
        )

    async def post_json(self, url: str, payload: dict[str, Any]) -> Any:
        return await self.retry.run(
            lambda: self._request_once("POST", url, json=payload),
            description=f"POST {url}",
        )


__all__ = ["HttpClient", "JsonHttpClient"]
