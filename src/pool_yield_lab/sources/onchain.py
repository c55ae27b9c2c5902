"""Point-in-time contract reads, optionally at a historical block."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
import logging
from typing import Any, Protocol

import aiohttp
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from ..core.constants import chain_info
from ..core.errors import MalformedUpstream, SourceUnavailable
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

Call = tuple[str, Sequence[Any]]


class OnChainReader(Protocol):
    async def call(
        self,
        target: str,
        abi: dict[str, Any],
        chain: str,
        params: Sequence[Any] = (),
        block: int | None = None,
    ) -> Any: ...

    async def multi_call(
        self,
        abi: dict[str, Any],
        calls: Sequence[Call],
        chain: str,
        block: int | None = None,
        permit_failure: bool = False,
    ) -> list[Any]: ...


def _chain_slug(chain: str) -> str:
    info = chain_info(chain)
    return info.slug if info else chain.lower()


class Web3Reader:
    """:class:`OnChainReader` backed by one ``AsyncWeb3`` client per chain."""

    def __init__(
        self,
        rpc_urls: Mapping[str, str],
        *,
        retry: RetryPolicy | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._rpc_urls = {_chain_slug(k): v for k, v in rpc_urls.items()}
        self._clients: dict[str, AsyncWeb3] = {}
        self.retry = retry or RetryPolicy()
        self.timeout = timeout

    def web3(self, chain: str) -> AsyncWeb3:
        slug = _chain_slug(chain)
        client = self._clients.get(slug)
        if client is None:
            url = self._rpc_urls.get(slug)
            if not url:
                raise SourceUnavailable(f"no RPC endpoint configured for {chain}", source=chain)
            provider = AsyncHTTPProvider(
                url, request_kwargs={"timeout": aiohttp.ClientTimeout(total=self.timeout)}
            )
            client = AsyncWeb3(provider)
            self._clients[slug] = client
        return client

    async def close(self) -> None:
        """Release every provider session opened by :meth:`web3`."""

        clients, self._clients = self._clients, {}
        for client in clients.values():
            await client.provider.disconnect()

    async def call(
        self,
        target: str,
        abi: dict[str, Any],
        chain: str,
        params: Sequence[Any] = (),
        block: int | None = None,
    ) -> Any:
        name = abi["name"]
        w3 = self.web3(chain)

        async def _once() -> Any:
            contract = w3.eth.contract(address=Web3.to_checksum_address(target), abi=[abi])
            fn = contract.get_function_by_name(name)(*params)
            call_kwargs = {"block_identifier": block} if block is not None else {}
            try:
                return await fn.call(**call_kwargs)
            except (ContractLogicError, BadFunctionCallOutput) as exc:
                raise MalformedUpstream(f"{name} reverted on {target}: {exc}", source=chain) from exc

        at = f" @{block}" if block is not None else ""
        return await self.retry.run(_once, description=f"{chain}:{target}.{name}{at}")

    async def multi_call(
        self,
        abi: dict[str, Any],
        calls: Sequence[Call],
        chain: str,
        block: int | None = None,
        permit_failure: bool = False,
    ) -> list[Any]:
        """Same function over many targets. Failed entries are ``None`` when permitted."""

        results = await asyncio.gather(
            *(self.call(target, abi, chain, params, block) for target, params in calls),
            return_exceptions=permit_failure,
        )
        if not permit_failure:
            return list(results)
        out: list[Any] = []
        for (target, _), res in zip(calls, results):
            if isinstance(res, Exception):
                logger.debug("multi_call %s on %s failed: %s", abi["name"], target, res)
                out.append(None)
            else:
                out.append(res)
        return out


__all__ = ["Call", "OnChainReader", "Web3Reader"]
