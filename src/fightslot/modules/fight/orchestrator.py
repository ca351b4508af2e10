"""
Fight Orchestrator

Purpose
-------
Drive one ``fightSlot1`` submission end to end: reconcile the wallet's
network, submit the transaction, wait for confirmation, and refresh state.

State machine
-------------
    IDLE -> RECONCILING_NETWORK -> SUBMITTING -> SUCCEEDED -> IDLE
                          \\              \\
                           +-> FAILED -----+-> FAILED -> IDLE

- At most one fight is in flight. A request while RECONCILING_NETWORK or
  SUBMITTING is rejected before any wallet or contract call.
- Success triggers exactly one refresh cycle; failure triggers none.
- SUCCEEDED and FAILED are reported, then the machine returns to IDLE
  before the caller gets the outcome or the exception.

Every state change publishes ``fight.state_changed``.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.bus import EventBus
from fightslot.core.exceptions import FightSlotInfrastructureException
from fightslot.core.logging.logger import LogContext, get_logger
from fightslot.core.rpc.gateway import ContractGateway
from fightslot.modules.chain.reconciler import ChainReconciler
from fightslot.modules.contracts.registry import ContractKind
from fightslot.modules.shared.base_service import BaseService
from fightslot.modules.shared.exceptions import (
    FightAlreadyInProgressError,
    FightTransactionError,
    NetworkReconciliationError,
)
from fightslot.modules.shared.models import FightOutcome, normalize_address
from fightslot.modules.sync.synchronizer import StateSynchronizer


class FightState(str, Enum):
    IDLE = "IDLE"
    RECONCILING_NETWORK = "RECONCILING_NETWORK"
    SUBMITTING = "SUBMITTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"

    @property
    def is_busy(self) -> bool:
        return self in (FightState.RECONCILING_NETWORK, FightState.SUBMITTING)


class FightOrchestrator(BaseService):
    """
    Args:
        gateway: Contract seam used for the write
        reconciler: Chain reconciler run before every submission
        synchronizer: Refreshed once after a confirmed fight
        config_manager: Configuration manager
        event_bus: Session event bus
    """

    def __init__(
        self,
        gateway: ContractGateway,
        reconciler: ChainReconciler,
        synchronizer: StateSynchronizer,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
    ) -> None:
        super().__init__(config_manager, event_bus, get_logger(__name__))
        self._gateway = gateway
        self._reconciler = reconciler
        self._synchronizer = synchronizer
        self._state = FightState.IDLE
        self._last_outcome: Optional[FightOutcome] = None

    @property
    def state(self) -> FightState:
        return self._state

    @property
    def last_outcome(self) -> Optional[FightOutcome]:
        return self._last_outcome

    async def _transition(self, new_state: FightState, **data: object) -> None:
        previous = self._state
        self._state = new_state
        self.log.debug(
            "Fight state changed",
            extra={"from_state": previous.value, "to_state": new_state.value},
        )
        await self.emit_event(
            "fight.state_changed",
            {"from_state": previous.value, "state": new_state.value, **data},
        )

    async def _fail(self, address: str, error: Exception) -> None:
        self.log_error("request_fight", error, player_address=address)
        await self._transition(
            FightState.FAILED,
            address=address,
            error_code=getattr(error, "error_code", type(error).__name__),
        )
        await self._transition(FightState.IDLE, address=address)

    async def request_fight(self, address: str) -> FightOutcome:
        """
        Reconcile, submit ``fightSlot1()`` from ``address`` and refresh.

        Raises:
            FightAlreadyInProgressError: Another fight is in flight
            NetworkReconciliationError: Wallet could not reach the chain
            FightTransactionError: Rejected, reverted or timed out
        """
        if self._state.is_busy:
            raise FightAlreadyInProgressError(self._state.value)

        address = normalize_address(address)
        # Claim the slot before the first await
        self._state = FightState.RECONCILING_NETWORK

        try:
            async with LogContext(player_address=address, operation="fight"):
                return await self._run(address)
        finally:
            if self._state is not FightState.IDLE:
                self.log.warning(
                    "Fight aborted unexpectedly, returning to IDLE",
                    extra={"state": self._state.value, "player_address": address},
                )
                self._state = FightState.IDLE

    async def _run(self, address: str) -> FightOutcome:
        self.log_operation("request_fight", player_address=address)
        await self.emit_event(
            "fight.state_changed",
            {
                "from_state": FightState.IDLE.value,
                "state": FightState.RECONCILING_NETWORK.value,
                "address": address,
            },
        )

        try:
            await self._reconciler.ensure_network(self.get_config("chain.chain_id"))
        except NetworkReconciliationError as exc:
            await self._fail(address, exc)
            raise

        await self._transition(FightState.SUBMITTING, address=address)

        try:
            result = await self._gateway.transact(
                ContractKind.GAME, "fightSlot1", (), address
            )
            outcome = FightOutcome.from_outputs(result.outputs, result.tx_hash)
        except FightSlotInfrastructureException as exc:
            error = FightTransactionError(
                address, exc.message, tx_hash=exc.details.get("tx_hash")
            )
            await self._fail(address, error)
            raise error from exc
        except (IndexError, TypeError, ValueError) as exc:
            error = FightTransactionError(address, f"unexpected fight result: {exc}")
            await self._fail(address, error)
            raise error from exc

        self._last_outcome = outcome
        self.log.info(
            "Fight confirmed",
            extra={
                "status": outcome.status,
                "drop": outcome.drop,
                "tx_hash": outcome.tx_hash,
            },
        )
        await self._transition(
            FightState.SUCCEEDED, address=address, outcome=outcome.to_dict()
        )

        self._synchronizer.synchronize(address)

        await self._transition(FightState.IDLE, address=address)
        return outcome
