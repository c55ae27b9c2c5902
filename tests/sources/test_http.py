from __future__ import annotations

import asyncio
import json
from typing import Any

import pytest

from pool_yield_lab.core import HttpStatusError, MalformedUpstream, SourceUnavailable
from pool_yield_lab.sources import JsonHttpClient, RetryPolicy


class _Response:
    def __init__(self, status: int, body: str) -> None:
        self.status = status
        self._body = body

    async def __aenter__(self) -> "_Response":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        return None

    async def text(self) -> str:
        return self._body

    async def json(self, content_type: str | None = "application/json") -> Any:
        return json.loads(self._body)


class _Session:
    def __init__(self, *responses: tuple[int, str]) -> None:
        self.responses = list(responses)
        self.requests: list[tuple[str, str, dict[str, Any]]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _Response:
        self.requests.append((method, url, kwargs))
        status, body = self.responses.pop(0)
        return _Response(status, body)


async def _no_sleep(_: float) -> None:
    return None


def _client(session: _Session, attempts: int = 3) -> JsonHttpClient:
    return JsonHttpClient(session, retry=RetryPolicy(max_attempts=attempts, sleep=_no_sleep))  # type: ignore[arg-type]


def test_get_json_decodes_body() -> None:
    session = _Session((200, '{"height": 5}'))
    assert asyncio.run(_client(session).get_json("https://x.test", params={"a": 1})) == {"height": 5}
    assert session.requests == [("GET", "https://x.test", {"params": {"a": 1}})]


def test_server_errors_are_retried() -> None:
    session = _Session((503, "busy"), (429, "slow down"), (200, "[1, 2]"))
    assert asyncio.run(_client(session).post_json("https://x.test", {"q": 1})) == [1, 2]
    assert len(session.requests) == 3


def test_client_errors_are_not_retried() -> None:
    session = _Session((404, "missing"), (200, "{}"))
    with pytest.raises(HttpStatusError) as excinfo:
        asyncio.run(_client(session).get_json("https://x.test"))
    assert excinfo.value.status == 404
    assert len(session.requests) == 1


def test_invalid_json_is_malformed() -> None:
    with pytest.raises(MalformedUpstream):
        asyncio.run(_client(_Session((200, "<html>"))).get_json("https://x.test"))


def test_retry_exhaustion() -> None:
    session = _Session((500, "a"), (500, "b"))
    with pytest.raises(SourceUnavailable, match="after 2 attempts"):
        asyncio.run(_client(session, attempts=2).get_json("https://x.test"))
