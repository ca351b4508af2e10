from fightslot.modules.sync.cells import CellState, FieldCell, SyncSnapshot
from fightslot.modules.sync.plan import FETCH_PLAN, FetchPlan, FieldSpec
from fightslot.modules.sync.synchronizer import StateSynchronizer

__all__ = [
    "CellState",
    "FieldCell",
    "SyncSnapshot",
    "FETCH_PLAN",
    "FetchPlan",
    "FieldSpec",
    "StateSynchronizer",
]
