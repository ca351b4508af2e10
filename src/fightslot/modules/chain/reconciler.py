"""
Chain Reconciler

Purpose
-------
Make sure the wallet is connected to the chain the game contracts live on
before a fight is submitted.

Protocol
--------
1. Query the active chain. Already on target -> OK, nothing sent. A failed
   query is logged and the switch is requested anyway.
2. ``wallet_switchEthereumChain``. Success -> OK.
3. Error 4902 (chain unknown to the wallet) -> NEEDS_REGISTRATION:
   ``wallet_addEthereumChain`` once with the full descriptor, then retry
   the switch exactly once.
4. Anything else, or a failed registration/retry -> FATAL, raised as
   ``NetworkReconciliationError``.

Events
------
- ``chain.switched``: wallet now on target (``registered`` tells whether
  the chain had to be added first, ``already_active`` whether no request
  was needed)
- ``chain.registered``: chain descriptor accepted by the wallet
- ``chain.failed``: reconciliation gave up
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.bus import EventBus
from fightslot.core.exceptions import (
    FightSlotInfrastructureException,
    WalletRequestError,
)
from fightslot.core.logging.logger import LogContext, get_logger
from fightslot.core.rpc.wallet import WalletProvider
from fightslot.modules.shared.base_service import BaseService
from fightslot.modules.shared.exceptions import NetworkReconciliationError


class ReconcileStep(str, Enum):
    OK = "OK"
    NEEDS_REGISTRATION = "NEEDS_REGISTRATION"
    FATAL = "FATAL"


@dataclass(frozen=True)
class ReconcileResult:
    """Outcome of one protocol step."""

    step: ReconcileStep
    reason: Optional[str] = None
    code: Optional[int] = None
    stage: Optional[str] = None

    @classmethod
    def ok(cls, stage: str) -> "ReconcileResult":
        return cls(ReconcileStep.OK, stage=stage)

    @classmethod
    def from_error(
        cls, stage: str, exc: BaseException, unknown_chain_code: Optional[int]
    ) -> "ReconcileResult":
        code = getattr(exc, "code", None)
        reason = getattr(exc, "message", None) or str(exc)
        if unknown_chain_code is not None and code == unknown_chain_code:
            return cls(ReconcileStep.NEEDS_REGISTRATION, reason, code, stage)
        return cls(ReconcileStep.FATAL, reason, code, stage)


@dataclass(frozen=True)
class ChainDescriptor:
    """Network parameters handed to ``wallet_addEthereumChain``."""

    chain_id: int
    chain_name: str
    rpc_urls: List[str]
    native_currency: Dict[str, Any]
    block_explorer_urls: List[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, config_manager: type[ConfigManager] = ConfigManager) -> "ChainDescriptor":
        chain = config_manager.get("chain", {}) or {}
        return cls(
            chain_id=int(chain.get("chain_id", 56)),
            chain_name=str(chain.get("chain_name", "")),
            rpc_urls=list(chain.get("rpc_urls", [])),
            native_currency=dict(chain.get("native_currency", {})),
            block_explorer_urls=list(chain.get("block_explorer_urls", [])),
        )

    @property
    def hex_chain_id(self) -> str:
        return hex(self.chain_id)

    def to_wallet_params(self) -> Dict[str, Any]:
        """
        >>> ChainDescriptor(56, "BSC", ["https://x"], {"name": "BNB", "symbol": "BNB",
        ...     "decimals": 18}).to_wallet_params()["chainId"]
        '0x38'
        """
        params: Dict[str, Any] = {
            "chainId": self.hex_chain_id,
            "chainName": self.chain_name,
            "rpcUrls": list(self.rpc_urls),
            "nativeCurrency": {
                "name": self.native_currency.get("name"),
                "symbol": self.native_currency.get("symbol"),
                "decimals": int(self.native_currency.get("decimals", 18)),
            },
        }
        if self.block_explorer_urls:
            params["blockExplorerUrls"] = list(self.block_explorer_urls)
        return params


class ChainReconciler(BaseService):
    """
    Moves the wallet onto the required chain.

    Args:
        wallet: EIP-1193 wallet seam
        config_manager: Configuration manager
        event_bus: Session event bus
        descriptor: Chain descriptor; read from config when omitted
    """

    def __init__(
        self,
        wallet: WalletProvider,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        descriptor: Optional[ChainDescriptor] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, get_logger(__name__))
        self._wallet = wallet
        self._descriptor = descriptor or ChainDescriptor.from_config(config_manager)

    @property
    def descriptor(self) -> ChainDescriptor:
        return self._descriptor

    def _unknown_chain_code(self) -> Optional[int]:
        code = self.get_config(
            "chain.unknown_chain_error_code", WalletRequestError.UNRECOGNIZED_CHAIN
        )
        return int(code) if code is not None else None

    # ------------------------------------------------------------------ #
    # Protocol steps
    # ------------------------------------------------------------------ #

    async def _query(self, target: int) -> Optional[ReconcileResult]:
        """OK when already on target, None to go on with the switch."""
        try:
            active = await self._wallet.chain_id()
        except FightSlotInfrastructureException as exc:
            self.log.warning(
                "Wallet chain query failed, requesting switch anyway",
                extra={
                    "required_chain_id": target,
                    "code": getattr(exc, "code", None),
                    "error_message": exc.message,
                },
            )
            return None

        self.log.debug(
            "Wallet chain queried",
            extra={"active_chain_id": active, "required_chain_id": target},
        )
        if active == target:
            return ReconcileResult.ok("query")
        return None

    async def _switch(self, target: int, stage: str) -> ReconcileResult:
        try:
            await self._wallet.switch_chain(target)
        except FightSlotInfrastructureException as exc:
            # Only the first switch may lead to registration
            unknown = self._unknown_chain_code() if stage == "switch" else None
            return ReconcileResult.from_error(stage, exc, unknown)
        return ReconcileResult.ok(stage)

    async def _register(self, descriptor: ChainDescriptor) -> ReconcileResult:
        try:
            await self._wallet.add_chain(descriptor.to_wallet_params())
        except FightSlotInfrastructureException as exc:
            return ReconcileResult.from_error("register", exc, None)
        return ReconcileResult.ok("register")

    async def reconcile(self, required_chain_id: Optional[int] = None) -> ReconcileResult:
        """
        Run the protocol and return the terminal result without raising.

        The terminal step is either OK or FATAL.
        """
        target = int(required_chain_id or self._descriptor.chain_id)
        descriptor = self._descriptor
        if descriptor.chain_id != target:
            descriptor = ChainDescriptor(
                chain_id=target,
                chain_name=descriptor.chain_name,
                rpc_urls=descriptor.rpc_urls,
                native_currency=descriptor.native_currency,
                block_explorer_urls=descriptor.block_explorer_urls,
            )

        queried = await self._query(target)
        if queried is not None:
            if queried.step is ReconcileStep.OK:
                await self.emit_event(
                    "chain.switched",
                    {"chain_id": target, "registered": False, "already_active": True},
                )
            return queried

        result = await self._switch(target, "switch")
        if result.step is ReconcileStep.OK:
            await self.emit_event(
                "chain.switched",
                {"chain_id": target, "registered": False, "already_active": False},
            )
            return result

        if result.step is ReconcileStep.NEEDS_REGISTRATION:
            self.log.info(
                "Chain unknown to wallet, registering",
                extra={"chain_id": target, "code": result.code},
            )
            registered = await self._register(descriptor)
            if registered.step is not ReconcileStep.OK:
                return registered

            await self.emit_event("chain.registered", {"chain_id": target})

            retried = await self._switch(target, "retry_switch")
            if retried.step is ReconcileStep.OK:
                await self.emit_event(
                    "chain.switched",
                    {"chain_id": target, "registered": True, "already_active": False},
                )
            return retried

        return result

    async def ensure_network(self, required_chain_id: Optional[int] = None) -> None:
        """
        Guarantee the wallet is on ``required_chain_id``.

        Raises:
            NetworkReconciliationError: With the failing stage and wallet code
        """
        target = int(required_chain_id or self._descriptor.chain_id)

        async with LogContext(chain_id=target, operation="ensure_network"):
            result = await self.reconcile(target)

            if result.step is ReconcileStep.OK:
                return

            error = NetworkReconciliationError(
                stage=result.stage or "unknown",
                reason=result.reason or "unknown wallet error",
                code=result.code,
                required_chain_id=target,
            )
            self.log_error("ensure_network", error, chain_id=target)
            await self.emit_event(
                "chain.failed",
                {
                    "chain_id": target,
                    "stage": error.stage,
                    "code": error.code,
                    "reason": error.reason,
                },
            )
            raise error
