"""GraphQL queries against a subgraph endpoint."""

from __future__ import annotations

from typing import Any

from ..core.errors import MalformedUpstream, SourceUnavailable
from .http import HttpClient


class SubgraphClient:
    def __init__(self, http: HttpClient) -> None:
        self._http = http

    async def query(
        self, url: str, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        body = await self._http.post_json(url, {"query": query, "variables": variables or {}})
        if not isinstance(body, dict):
            raise MalformedUpstream("subgraph response is not an object", source=url)
        errors = body.get("errors")
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e) for e in errors)
            raise SourceUnavailable(f"subgraph errors: {messages}", source=url)
        data = body.get("data")
        if not isinstance(data, dict):
            raise MalformedUpstream("subgraph response has no 'data' object", source=url)
        return data


__all__ = ["SubgraphClient"]
