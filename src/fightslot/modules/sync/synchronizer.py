"""
State Synchronizer

Purpose
-------
Keep a per-field view of the player's on-chain state. Each refresh cycle
walks the fetch plan: independent reads go out at once, dependent reads go
out as soon as their inputs for the current cycle have arrived.

Rules
-----
- A field is dispatched only when each dependency is RESOLVED in the
  current cycle, and reference dependencies hold a non-zero token id. No
  read is ever issued against an unset slot.
- A given (cycle, args) pair is dispatched at most once per field.
- Arrivals are applied in arrival order (last arrival wins) unless the field
  already holds a result from a newer cycle, or the reply was keyed on a slot
  the field no longer follows. Only current-cycle arrivals unlock dependents.
- Replies for a previous player address are discarded.
- When a slot resolves to 0 or to a different token id, every field that
  depends on it (transitively) goes back to PENDING.
- A new cycle never cancels in-flight reads.
- Read failures mark the field FAILED, are logged and published, and never
  raise to the caller.

Events
------
- ``sync.cycle_started``: {address, cycle}
- ``sync.field_resolved``: {address, cycle, field, value, current}
- ``sync.field_failed``: {address, cycle, field, error, current}
"""

from __future__ import annotations

import asyncio
from dataclasses import asdict, is_dataclass
from typing import Any, Dict, FrozenSet, Optional, Set, Tuple

from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.bus import EventBus
from fightslot.core.exceptions import FightSlotInfrastructureException
from fightslot.core.logging.logger import LogContext, get_logger
from fightslot.core.rpc.gateway import ContractGateway
from fightslot.modules.shared.base_service import BaseService
from fightslot.modules.shared.exceptions import FightSlotDomainException
from fightslot.modules.shared.models import (
    UNSET_TOKEN_ID,
    RewardAccount,
    normalize_address,
)
from fightslot.modules.sync.cells import FieldCell, SyncSnapshot
from fightslot.modules.sync.plan import (
    ADDRESS,
    REFERENCE_FIELDS,
    REWARDS,
    FetchPlan,
    FieldSpec,
)

_READ_ERRORS = (
    FightSlotInfrastructureException,
    FightSlotDomainException,
    ValueError,
    TypeError,
)


def _payload_value(value: Any) -> Any:
    if is_dataclass(value) and not isinstance(value, type):
        return asdict(value)
    return value


class StateSynchronizer(BaseService):
    """
    Args:
        gateway: Contract read seam
        config_manager: Configuration manager
        event_bus: Session event bus
        plan: Fetch plan; the standard FightSlot plan when omitted
    """

    def __init__(
        self,
        gateway: ContractGateway,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        plan: Optional[FetchPlan] = None,
    ) -> None:
        super().__init__(config_manager, event_bus, get_logger(__name__))
        self._gateway = gateway
        self._plan = plan or FetchPlan()
        self._cells: Dict[str, FieldCell] = {
            spec.name: FieldCell(spec.name) for spec in self._plan
        }
        self._address: Optional[str] = None
        self._cycle = 0
        self._dispatched: Dict[str, Tuple[int, Tuple[Any, ...]]] = {}
        # Values that arrived for the cycle they were requested in; drives readiness
        self._fresh: Dict[str, Tuple[int, Any]] = {}
        self._tasks: Set[asyncio.Task[None]] = set()
        self._unset_token_id = int(
            self.get_config("sync.unset_token_id", UNSET_TOKEN_ID)
        )

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #

    @property
    def cycle(self) -> int:
        return self._cycle

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    def synchronize(self, address: str) -> int:
        """
        Start a new refresh cycle for ``address`` and return its number.

        Does not wait for any read. Must be called from the running loop.

        Raises:
            ValueError: If ``address`` is not a valid account address
        """
        address = normalize_address(address)

        if self._address is not None and address != self._address:
            # Another player: nothing from the previous one applies
            for cell in self._cells.values():
                cell.reset()
            self._dispatched.clear()
            self._fresh.clear()

        self._address = address
        self._cycle += 1
        cycle = self._cycle

        self.log.info(
            "Refresh cycle started",
            extra={
                "player_address": address,
                "cycle": cycle,
                "in_flight": len(self._tasks),
            },
        )
        self._spawn(
            self.emit_event("sync.cycle_started", {"address": address, "cycle": cycle})
        )
        self._dispatch_ready()
        return cycle

    async def wait_idle(self) -> None:
        """Wait until no read is in flight, including reads unlocked meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def snapshot(self) -> SyncSnapshot:
        return SyncSnapshot(
            address=self._address,
            cycle=self._cycle,
            cells={name: cell.copy() for name, cell in self._cells.items()},
            in_flight=len(self._tasks),
            blocked=self._blocked(),
        )

    def _blocked(self) -> FrozenSet[str]:
        """Fields stuck behind a slot that is unset or failed to load."""
        blocked: Set[str] = set()
        for ref in REFERENCE_FIELDS:
            cell = self._cells.get(ref)
            if cell is None or cell.is_pending:
                continue
            if not cell.is_resolved or cell.value == self._unset_token_id:
                blocked.update(self._plan.dependents(ref, transitive=True))
        return frozenset(blocked)

    def cell(self, name: str) -> FieldCell:
        """
        Raises:
            KeyError: If ``name`` is not a planned field
        """
        return self._cells[name].copy()

    # ------------------------------------------------------------------ #
    # Dispatch
    # ------------------------------------------------------------------ #

    def _spawn(self, coro: Any) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _ready_args(self, spec: FieldSpec) -> Optional[Tuple[Any, ...]]:
        args = []
        for source in spec.args:
            if source == ADDRESS:
                args.append(self._address)
                continue

            fresh = self._fresh.get(source)
            if fresh is None or fresh[0] != self._cycle:
                return None
            value = fresh[1]
            if source in REFERENCE_FIELDS and value == self._unset_token_id:
                return None
            args.append(value)
        return tuple(args)

    def _cached(self, spec: FieldSpec) -> bool:
        if not spec.cacheable:
            return False
        if not self.get_config("sync.cache_hp_require_base", True):
            return False
        return self._cells[spec.name].is_resolved

    def _dispatch_ready(self) -> None:
        for spec in self._plan:
            args = self._ready_args(spec)
            if args is None:
                continue

            key = (self._cycle, args)
            if self._dispatched.get(spec.name) == key:
                continue
            if self._cached(spec):
                continue

            self._dispatched[spec.name] = key
            self._spawn(self._fetch(spec, self._address, self._cycle, args))

    async def _fetch(
        self, spec: FieldSpec, address: str, cycle: int, args: Tuple[Any, ...]
    ) -> None:
        async with LogContext(
            player_address=address, cycle=cycle, operation=f"sync.{spec.name}"
        ):
            try:
                raw = await self._gateway.call(spec.contract, spec.method, args)
                value = spec.decode(raw)
            except _READ_ERRORS as exc:
                if not self._superseded(spec, address, cycle, args):
                    await self._apply_failure(spec, cycle, exc)
                return

            if not self._superseded(spec, address, cycle, args):
                await self._apply_arrival(spec, cycle, value)

    # ------------------------------------------------------------------ #
    # Arrivals
    # ------------------------------------------------------------------ #

    def _superseded(
        self, spec: FieldSpec, address: str, cycle: int, args: Tuple[Any, ...]
    ) -> bool:
        """Whether a reply no longer belongs in the current view."""
        reason = None
        if address != self._address:
            reason = "address_changed"
        elif cycle != self._cycle:
            dispatched = self._dispatched.get(spec.name)
            if self._cells[spec.name].cycle > cycle:
                reason = "newer_result"
            elif spec.dependencies and (dispatched is None or dispatched[1] != args):
                reason = "slot_changed"
        if reason is None:
            return False

        self.log.debug(
            "Discarding superseded reply",
            extra={"field": spec.name, "cycle": cycle, "reason": reason},
        )
        return True

    def _reset_dependents(self, name: str) -> None:
        for dependent in self._plan.dependents(name, transitive=True):
            self._cells[dependent].reset()
            self._dispatched.pop(dependent, None)
            self._fresh.pop(dependent, None)

    def _check_rewards(self, previous: Any, value: RewardAccount) -> None:
        if not isinstance(previous, RewardAccount):
            return
        decreased = value.decreased_fields(previous)
        if decreased:
            self.log.warning(
                "Reward account decreased; accepting new value",
                extra={
                    "player_address": self._address,
                    "fields": decreased,
                    "previous": previous.to_dict(),
                    "current": value.to_dict(),
                },
            )

    async def _apply_arrival(self, spec: FieldSpec, cycle: int, value: Any) -> None:
        cell = self._cells[spec.name]
        current = cycle == self._cycle
        previous = cell.value if cell.is_resolved else None

        if spec.name == REWARDS:
            self._check_rewards(previous, value)

        if (
            current
            and spec.name in REFERENCE_FIELDS
            and (value == self._unset_token_id or (previous is not None and previous != value))
        ):
            self._reset_dependents(spec.name)

        cell.resolve(value, cycle)
        if current:
            self._fresh[spec.name] = (cycle, value)

        self.log.debug(
            "Field resolved",
            extra={"field": spec.name, "cycle": cycle, "current": current},
        )
        await self.emit_event(
            "sync.field_resolved",
            {
                "address": self._address,
                "cycle": cycle,
                "field": spec.name,
                "value": _payload_value(value),
                "current": current,
            },
        )

        if current:
            self._dispatch_ready()

    async def _apply_failure(
        self, spec: FieldSpec, cycle: int, exc: BaseException
    ) -> None:
        cell = self._cells[spec.name]
        current = cycle == self._cycle

        self.log.warning(
            "Field read failed",
            extra={
                "field": spec.name,
                "cycle": cycle,
                "current": current,
                "error_type": type(exc).__name__,
                "error_message": str(exc),
            },
        )

        cell.fail(str(exc), cycle)
        if current:
            self._fresh.pop(spec.name, None)
            if spec.name in REFERENCE_FIELDS:
                self._reset_dependents(spec.name)

        await self.emit_event(
            "sync.field_failed",
            {
                "address": self._address,
                "cycle": cycle,
                "field": spec.name,
                "error": str(exc),
                "current": current,
            },
        )
