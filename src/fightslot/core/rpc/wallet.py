"""
EIP-1193 wallet requests over a web3.py async provider.

``WalletProvider`` is the protocol the chain reconciler depends on.
``Web3Wallet`` sends ``eth_chainId``, ``wallet_switchEthereumChain`` and
``wallet_addEthereumChain`` as raw JSON-RPC requests and turns error
responses into ``WalletRequestError`` with the wallet's numeric code.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Protocol

from web3 import AsyncWeb3
from web3.types import RPCEndpoint

from fightslot.core.exceptions import RpcTimeoutError, WalletRequestError
from fightslot.core.logging.logger import get_logger

logger = get_logger(__name__)


class WalletProvider(Protocol):
    async def chain_id(self) -> int: ...

    async def switch_chain(self, chain_id: int) -> None: ...

    async def add_chain(self, descriptor: Mapping[str, Any]) -> None: ...


def _extract_code(error: Mapping[str, Any]) -> Any:
    """
    Pull the wallet error code, looking inside ``data.originalError`` too.

    Some mobile wallets wrap the 4902 response that way.
    """
    code = error.get("code")
    data = error.get("data")
    if isinstance(data, Mapping):
        original = data.get("originalError")
        if isinstance(original, Mapping) and original.get("code") is not None:
            return original.get("code")
    return code


class Web3Wallet:
    """
    Args:
        w3: Async web3 instance whose provider fronts the wallet
        timeout: Seconds allowed per wallet request
    """

    def __init__(self, w3: AsyncWeb3, *, timeout: float = 60.0) -> None:
        self._w3 = w3
        self._timeout = timeout

    @classmethod
    def from_url(cls, url: str, *, timeout: float = 60.0) -> "Web3Wallet":
        return cls(AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(url)), timeout=timeout)

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    async def _request(self, method: str, params: List[Any]) -> Any:
        try:
            response = await asyncio.wait_for(
                self._w3.provider.make_request(RPCEndpoint(method), params),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            raise RpcTimeoutError(f"wallet:{method}", self._timeout) from None
        except WalletRequestError:
            raise
        except Exception as exc:
            raise WalletRequestError(method, None, str(exc)) from exc

        error = response.get("error") if isinstance(response, Mapping) else None
        if error:
            if isinstance(error, Mapping):
                code = _extract_code(error)
                message = str(error.get("message", "wallet error"))
            else:
                code, message = None, str(error)
            try:
                code = int(code) if code is not None else None
            except (TypeError, ValueError):
                code = None
            logger.debug(
                "Wallet request returned an error",
                extra={"wallet_method": method, "code": code, "wallet_message": message},
            )
            raise WalletRequestError(method, code, message)

        return response.get("result") if isinstance(response, Mapping) else response

    async def chain_id(self) -> int:
        result = await self._request("eth_chainId", [])
        if isinstance(result, str):
            return int(result, 16)
        return int(result)

    async def switch_chain(self, chain_id: int) -> None:
        await self._request("wallet_switchEthereumChain", [{"chainId": hex(chain_id)}])

    async def add_chain(self, descriptor: Mapping[str, Any]) -> None:
        params: Dict[str, Any] = dict(descriptor)
        await self._request("wallet_addEthereumChain", [params])
