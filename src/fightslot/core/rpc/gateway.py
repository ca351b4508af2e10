"""
Contract gateway over web3.py.

Purpose
-------
The single seam through which the client reads from and writes to the
game contracts. Domain services depend on the ``ContractGateway``
protocol; ``Web3ContractGateway`` implements it on ``web3.AsyncWeb3``.

Design Notes
------------
- Every call is validated against the contract registry before dispatch.
- Reads are bounded by the read timeout; writes are bounded by the write
  timeout while waiting for the receipt.
- web3 and transport failures are wrapped in ``RpcError`` /
  ``RpcTimeoutError``. Nothing retries here.
- ``transact`` simulates the call with ``eth_call`` first to obtain the
  method's return values (a transaction receipt carries no return data),
  then sends it with ``eth_sendTransaction`` so the wallet behind the
  provider signs it.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Dict, Mapping, NamedTuple, Optional, Protocol, Sequence, Tuple

from web3 import AsyncWeb3
from web3.contract import AsyncContract
from web3.exceptions import TimeExhausted

from fightslot.core.exceptions import RpcError, RpcTimeoutError
from fightslot.core.logging.logger import get_logger
from fightslot.modules.contracts.registry import (
    ContractKind,
    ContractMethod,
    abi_for,
    validate_call,
)

logger = get_logger(__name__)


class TransactionResult(NamedTuple):
    """Return values of a confirmed write plus where it landed."""

    outputs: Tuple[Any, ...]
    tx_hash: str
    block_number: Optional[int] = None


class ContractGateway(Protocol):
    async def call(
        self, contract: ContractKind, method: str, args: Sequence[Any] = ()
    ) -> Any: ...

    async def transact(
        self,
        contract: ContractKind,
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionResult: ...


def _as_tuple(value: Any) -> Tuple[Any, ...]:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return (value,)


class Web3ContractGateway:
    """
    ``ContractGateway`` backed by ``AsyncWeb3``.

    Args:
        w3: Connected async web3 instance used for reads
        signer: Async web3 instance fronting the wallet, used for writes;
            defaults to ``w3``
        addresses: Contract address per ``ContractKind`` name
        read_timeout: Seconds allowed per read
        write_timeout: Seconds allowed for the receipt of a write
    """

    def __init__(
        self,
        w3: AsyncWeb3,
        addresses: Mapping[str, str],
        *,
        read_timeout: float = 15.0,
        write_timeout: float = 180.0,
        signer: Optional[AsyncWeb3] = None,
    ) -> None:
        self._w3 = w3
        self._signer = signer or w3
        self._addresses = {str(k).upper(): v for k, v in addresses.items()}
        self._read_timeout = read_timeout
        self._write_timeout = write_timeout
        self._contracts: Dict[Tuple[ContractKind, bool], AsyncContract] = {}

    @classmethod
    def from_url(
        cls,
        rpc_url: str,
        addresses: Mapping[str, str],
        **kwargs: Any,
    ) -> "Web3ContractGateway":
        w3 = AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        return cls(w3, addresses, **kwargs)

    @property
    def w3(self) -> AsyncWeb3:
        return self._w3

    def _contract(self, kind: ContractKind, write: bool = False) -> AsyncContract:
        contract = self._contracts.get((kind, write))
        if contract is None:
            address = self._addresses.get(kind.value)
            if not address:
                raise RpcError(
                    f"{kind.value}.*", reason=f"no address configured for {kind.value}"
                )
            w3 = self._signer if write else self._w3
            contract = w3.eth.contract(
                address=AsyncWeb3.to_checksum_address(address),
                abi=abi_for(kind),
            )
            self._contracts[(kind, write)] = contract
        return contract

    def _function(
        self, spec: ContractMethod, args: Sequence[Any], write: bool = False
    ) -> Any:
        contract = self._contract(spec.contract, write)
        return getattr(contract.functions, spec.name)(*args)

    async def call(
        self, contract: ContractKind, method: str, args: Sequence[Any] = ()
    ) -> Any:
        """
        Perform a read and return the decoded value.

        Single-output methods return the bare value; multi-output methods
        return a tuple.

        Raises:
            RpcTimeoutError: If the read exceeds the read timeout
            RpcError: For any other transport or contract failure
        """
        spec = validate_call(contract, method, args)
        operation = spec.qualified_name
        start = time.perf_counter()

        try:
            result = await asyncio.wait_for(
                self._function(spec, args).call(), timeout=self._read_timeout
            )
        except asyncio.TimeoutError:
            raise RpcTimeoutError(operation, self._read_timeout) from None
        except RpcError:
            raise
        except Exception as exc:
            raise RpcError(operation, exc) from exc

        logger.debug(
            "Contract read completed",
            extra={
                "operation": operation,
                "call_args": list(args),
                "duration_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )

        if len(spec.outputs) > 1:
            return _as_tuple(result)
        return result

    async def transact(
        self,
        contract: ContractKind,
        method: str,
        args: Sequence[Any],
        sender: str,
    ) -> TransactionResult:
        """
        Simulate, send and confirm a state-changing call from ``sender``.

        Raises:
            RpcTimeoutError: If simulation or receipt wait exceeds its budget
            RpcError: On simulation revert, wallet rejection, send failure
                or a receipt with status 0
        """
        spec = validate_call(contract, method, args)
        operation = spec.qualified_name
        tx_params = {"from": AsyncWeb3.to_checksum_address(sender)}
        fn = self._function(spec, args, write=True)

        try:
            simulated = await asyncio.wait_for(
                fn.call(tx_params), timeout=self._read_timeout
            )
        except asyncio.TimeoutError:
            raise RpcTimeoutError(f"{operation}:simulate", self._read_timeout) from None
        except Exception as exc:
            raise RpcError(f"{operation}:simulate", exc) from exc

        try:
            tx_hash = await fn.transact(tx_params)
        except Exception as exc:
            raise RpcError(f"{operation}:send", exc) from exc

        tx_hex = tx_hash if isinstance(tx_hash, str) else AsyncWeb3.to_hex(tx_hash)
        logger.info(
            "Transaction submitted",
            extra={"operation": operation, "tx_hash": tx_hex, "sender": sender},
        )

        try:
            receipt = await asyncio.wait_for(
                self._signer.eth.wait_for_transaction_receipt(
                    tx_hash, timeout=self._write_timeout
                ),
                timeout=self._write_timeout + 1.0,
            )
        except (asyncio.TimeoutError, TimeExhausted):
            error: RpcError = RpcTimeoutError(f"{operation}:receipt", self._write_timeout)
            error.details["tx_hash"] = tx_hex
            raise error from None
        except Exception as exc:
            error = RpcError(f"{operation}:receipt", exc)
            error.details["tx_hash"] = tx_hex
            raise error from exc

        if receipt.get("status") == 0:
            error = RpcError(f"{operation}:receipt", reason="transaction reverted")
            error.details["tx_hash"] = tx_hex
            raise error

        return TransactionResult(
            outputs=_as_tuple(simulated),
            tx_hash=tx_hex,
            block_number=receipt.get("blockNumber"),
        )
