"""
Per-field state holders for the state synchronizer.

A ``FieldCell`` holds the last value received for one field, the refresh
cycle that produced it and the last error. ``SyncSnapshot`` is a read-only
copy of every cell at one instant.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Mapping, Optional


class CellState(str, Enum):
    PENDING = "PENDING"
    RESOLVED = "RESOLVED"
    FAILED = "FAILED"


@dataclass
class FieldCell:
    name: str
    state: CellState = CellState.PENDING
    value: Any = None
    cycle: int = 0
    error: Optional[str] = None
    updated_at: Optional[float] = None

    @property
    def is_resolved(self) -> bool:
        return self.state is CellState.RESOLVED

    @property
    def is_pending(self) -> bool:
        return self.state is CellState.PENDING

    def resolve(self, value: Any, cycle: int) -> None:
        self.state = CellState.RESOLVED
        self.value = value
        self.cycle = cycle
        self.error = None
        self.updated_at = time.time()

    def fail(self, error: str, cycle: int) -> None:
        # A failed read means "no data"; the previous value is not kept
        self.state = CellState.FAILED
        self.value = None
        self.cycle = cycle
        self.error = error
        self.updated_at = time.time()

    def reset(self) -> None:
        self.state = CellState.PENDING
        self.value = None
        self.error = None
        self.updated_at = time.time()

    def copy(self) -> "FieldCell":
        return replace(self)


@dataclass(frozen=True)
class SyncSnapshot:
    """
    Frozen view of the synchronizer.

    ``value(name)`` returns ``None`` unless the field is resolved, so
    callers never mistake a pending or failed field for zero.
    """

    address: Optional[str]
    cycle: int
    cells: Mapping[str, FieldCell] = field(default_factory=dict)
    in_flight: int = 0
    blocked: FrozenSet[str] = frozenset()

    def value(self, name: str) -> Any:
        cell = self.cells.get(name)
        if cell is None or cell.state is not CellState.RESOLVED:
            return None
        return cell.value

    def state(self, name: str) -> Optional[CellState]:
        cell = self.cells.get(name)
        return cell.state if cell is not None else None

    def pending(self) -> List[str]:
        return [name for name, cell in self.cells.items() if cell.is_pending]

    def loading(self) -> List[str]:
        """Pending fields that are not blocked behind an unset slot."""
        return [name for name in self.pending() if name not in self.blocked]

    def failed(self) -> List[str]:
        return [
            name for name, cell in self.cells.items() if cell.state is CellState.FAILED
        ]

    def errors(self) -> Dict[str, str]:
        return {
            name: cell.error
            for name, cell in self.cells.items()
            if cell.state is CellState.FAILED and cell.error
        }

    @property
    def is_idle(self) -> bool:
        return self.in_flight == 0
