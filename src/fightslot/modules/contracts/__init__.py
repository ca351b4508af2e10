from fightslot.modules.contracts.registry import (
    METHODS,
    ContractKind,
    ContractMethod,
    abi_for,
    get_method,
    validate_call,
)

__all__ = [
    "METHODS",
    "ContractKind",
    "ContractMethod",
    "abi_for",
    "get_method",
    "validate_call",
]
