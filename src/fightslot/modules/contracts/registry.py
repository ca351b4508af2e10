"""
Contract method catalog.

Purpose
-------
Declarative description of every contract method the client touches: the
four contracts (game, character NFT, weapon NFT, reward pool), each
method's typed inputs and outputs and its state mutability.

Responsibilities
----------------
- Look up a method by (contract, name)
- Emit web3-compatible ABI fragments per contract
- Validate call arguments (arity and ABI type) before dispatch

No I/O happens here.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from eth_abi import is_encodable

from fightslot.modules.shared.exceptions import (
    InvalidContractCallError,
    UnknownContractMethodError,
)


class ContractKind(str, Enum):
    GAME = "GAME"
    CHARACTER = "CHARACTER"
    WEAPON = "WEAPON"
    REWARD_POOL = "REWARD_POOL"


class StateMutability(str, Enum):
    VIEW = "view"
    NONPAYABLE = "nonpayable"


@dataclass(frozen=True)
class AbiParam:
    name: str
    type: str

    def to_abi(self) -> Dict[str, str]:
        return {"internalType": self.type, "name": self.name, "type": self.type}


@dataclass(frozen=True)
class ContractMethod:
    """One catalog entry."""

    contract: ContractKind
    name: str
    inputs: Tuple[AbiParam, ...] = ()
    outputs: Tuple[AbiParam, ...] = ()
    mutability: StateMutability = StateMutability.VIEW

    @property
    def is_read(self) -> bool:
        return self.mutability is StateMutability.VIEW

    @property
    def qualified_name(self) -> str:
        return f"{self.contract.value}.{self.name}"

    def to_abi(self) -> Dict[str, Any]:
        return {
            "inputs": [p.to_abi() for p in self.inputs],
            "name": self.name,
            "outputs": [p.to_abi() for p in self.outputs],
            "stateMutability": self.mutability.value,
            "type": "function",
        }


def _uint(name: str) -> AbiParam:
    return AbiParam(name, "uint256")


def _char_getter(name: str, output: str) -> ContractMethod:
    return ContractMethod(
        ContractKind.CHARACTER, name, (_uint("_tokenID"),), (_uint(output),)
    )


METHODS: Tuple[ContractMethod, ...] = (
    # Game
    ContractMethod(
        ContractKind.GAME,
        "getCharSlot1",
        (AbiParam("_address", "address"),),
        (_uint("tokenID"),),
    ),
    ContractMethod(
        ContractKind.GAME,
        "getWeaponSlot1",
        (AbiParam("_address", "address"),),
        (_uint("_tokenID"),),
    ),
    ContractMethod(
        ContractKind.GAME,
        "getSuccessRate",
        (_uint("_tokenID"), _uint("_weaponAttack")),
        (_uint("Rate"),),
    ),
    ContractMethod(ContractKind.GAME, "hpRequireBase", (), (_uint("HP"),)),
    ContractMethod(
        ContractKind.GAME,
        "fightSlot1",
        (),
        (AbiParam("status", "bool"), _uint("drop")),
        StateMutability.NONPAYABLE,
    ),
    # Character NFT
    _char_getter("getCharHP", "HP"),
    _char_getter("getCharXP", "XP"),
    _char_getter("getCharLevel", "Level"),
    _char_getter("getAngelModifier", "Angel"),
    _char_getter("getCharSkill", "Skill"),
    _char_getter("getCharType", "Type"),
    _char_getter("getCharStatus", "Status"),
    # Weapon NFT
    ContractMethod(
        ContractKind.WEAPON, "getBaseAttack", (_uint("_tokenID"),), (_uint("attack"),)
    ),
    # Reward pool
    ContractMethod(
        ContractKind.REWARD_POOL,
        "rewards",
        (AbiParam("address", "address"),),
        (
            _uint("totalReceived"),
            _uint("totalAccumulated"),
            _uint("currentLimit"),
            _uint("limitReset"),
        ),
    ),
)

_INDEX: Dict[Tuple[ContractKind, str], ContractMethod] = {
    (m.contract, m.name): m for m in METHODS
}


def _kind(contract: Any) -> ContractKind:
    if isinstance(contract, ContractKind):
        return contract
    try:
        return ContractKind(str(contract).upper())
    except ValueError:
        raise UnknownContractMethodError(str(contract), "*") from None


def get_method(contract: Any, name: str) -> ContractMethod:
    """
    Return the catalog entry for ``contract.name``.

    Raises:
        UnknownContractMethodError: If the pair is not catalogued
    """
    kind = _kind(contract)
    method = _INDEX.get((kind, name))
    if method is None:
        raise UnknownContractMethodError(kind.value, name)
    return method


def methods_for(contract: Any) -> List[ContractMethod]:
    kind = _kind(contract)
    return [m for m in METHODS if m.contract is kind]


def abi_for(contract: Any) -> List[Dict[str, Any]]:
    """web3-compatible ABI for every catalogued method of ``contract``."""
    return [m.to_abi() for m in methods_for(contract)]


def _check_value(abi_type: str, value: Any) -> Optional[str]:
    if is_encodable(abi_type, value):
        return None
    return f"{value!r} is not a valid {abi_type}"


def validate_call(contract: Any, name: str, args: Sequence[Any]) -> ContractMethod:
    """
    Check ``args`` against the method's inputs and return the method.

    Raises:
        UnknownContractMethodError: If the method is not catalogued
        InvalidContractCallError: On arity or type mismatch
    """
    method = get_method(contract, name)
    args = tuple(args)

    if len(args) != len(method.inputs):
        raise InvalidContractCallError(
            method.contract.value,
            name,
            f"expected {len(method.inputs)} argument(s), got {len(args)}",
        )

    for param, value in zip(method.inputs, args):
        problem = _check_value(param.type, value)
        if problem is not None:
            raise InvalidContractCallError(
                method.contract.value, name, f"{param.name}: {problem}"
            )

    return method


__all__ = [
    "ContractKind",
    "StateMutability",
    "AbiParam",
    "ContractMethod",
    "METHODS",
    "get_method",
    "methods_for",
    "abi_for",
    "validate_call",
]
