from fightslot.modules.shared.base_service import BaseService
from fightslot.modules.shared.exceptions import (
    DataNotReadyError,
    FightAlreadyInProgressError,
    FightSlotDomainException,
    FightTransactionError,
    InvalidContractCallError,
    NetworkReconciliationError,
    UnknownContractMethodError,
)

__all__ = [
    "BaseService",
    "FightSlotDomainException",
    "UnknownContractMethodError",
    "InvalidContractCallError",
    "NetworkReconciliationError",
    "FightTransactionError",
    "FightAlreadyInProgressError",
    "DataNotReadyError",
]
