"""
Fetch plan: which contract read fills which field, and from what inputs.

Argument sources are either ``ADDRESS`` (the player address) or the name of
another field. A field is a dependency of every field that names it as an
argument. Reference fields (the two slots) additionally gate their
dependents on holding a non-sentinel token id.

    char_slot, weapon_slot, hp_require_base, rewards   (independent)
    weapon_slot -> base_attack
    char_slot   -> char_hp, char_xp, char_level, angel_modifier,
                   char_skill, char_type, char_status
    char_slot + base_attack -> success_rate
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, FrozenSet, Iterator, List, Tuple

from fightslot.modules.contracts.registry import ContractKind, get_method
from fightslot.modules.shared.models import RewardAccount

ADDRESS = "$address"

CHAR_SLOT = "char_slot"
WEAPON_SLOT = "weapon_slot"
BASE_ATTACK = "base_attack"
CHAR_HP = "char_hp"
CHAR_XP = "char_xp"
CHAR_LEVEL = "char_level"
ANGEL_MODIFIER = "angel_modifier"
CHAR_SKILL = "char_skill"
CHAR_TYPE = "char_type"
CHAR_STATUS = "char_status"
SUCCESS_RATE = "success_rate"
HP_REQUIRE_BASE = "hp_require_base"
REWARDS = "rewards"

REFERENCE_FIELDS: FrozenSet[str] = frozenset({CHAR_SLOT, WEAPON_SLOT})


def _as_int(value: Any) -> int:
    return int(value)


@dataclass(frozen=True)
class FieldSpec:
    name: str
    contract: ContractKind
    method: str
    args: Tuple[str, ...] = ()
    decode: Callable[[Any], Any] = _as_int
    cacheable: bool = False

    @property
    def dependencies(self) -> Tuple[str, ...]:
        return tuple(a for a in self.args if a != ADDRESS)


def _char(name: str, method: str) -> FieldSpec:
    return FieldSpec(name, ContractKind.CHARACTER, method, (CHAR_SLOT,))


FETCH_PLAN: Tuple[FieldSpec, ...] = (
    FieldSpec(CHAR_SLOT, ContractKind.GAME, "getCharSlot1", (ADDRESS,)),
    FieldSpec(WEAPON_SLOT, ContractKind.GAME, "getWeaponSlot1", (ADDRESS,)),
    FieldSpec(BASE_ATTACK, ContractKind.WEAPON, "getBaseAttack", (WEAPON_SLOT,)),
    _char(CHAR_HP, "getCharHP"),
    _char(CHAR_XP, "getCharXP"),
    _char(CHAR_LEVEL, "getCharLevel"),
    _char(ANGEL_MODIFIER, "getAngelModifier"),
    _char(CHAR_SKILL, "getCharSkill"),
    _char(CHAR_TYPE, "getCharType"),
    _char(CHAR_STATUS, "getCharStatus"),
    FieldSpec(
        SUCCESS_RATE, ContractKind.GAME, "getSuccessRate", (CHAR_SLOT, BASE_ATTACK)
    ),
    FieldSpec(HP_REQUIRE_BASE, ContractKind.GAME, "hpRequireBase", cacheable=True),
    FieldSpec(
        REWARDS,
        ContractKind.REWARD_POOL,
        "rewards",
        (ADDRESS,),
        decode=RewardAccount.from_tuple,
    ),
)


class FetchPlan:
    """Indexed fetch plan with dependency lookups."""

    def __init__(self, specs: Tuple[FieldSpec, ...] = FETCH_PLAN) -> None:
        self._specs: Dict[str, FieldSpec] = {}
        for spec in specs:
            # Fail fast on a plan entry that is not in the catalog
            get_method(spec.contract, spec.method)
            for dep in spec.dependencies:
                if dep not in self._specs:
                    raise ValueError(
                        f"Field {spec.name} depends on {dep}, which must be declared first"
                    )
            self._specs[spec.name] = spec

        self._dependents: Dict[str, List[str]] = {name: [] for name in self._specs}
        for spec in self._specs.values():
            for dep in spec.dependencies:
                self._dependents[dep].append(spec.name)

    def __iter__(self) -> Iterator[FieldSpec]:
        return iter(self._specs.values())

    def __len__(self) -> int:
        return len(self._specs)

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    @property
    def names(self) -> List[str]:
        return list(self._specs)

    def get(self, name: str) -> FieldSpec:
        return self._specs[name]

    def dependents(self, name: str, transitive: bool = False) -> List[str]:
        direct = self._dependents.get(name, [])
        if not transitive:
            return list(direct)

        seen: List[str] = []
        stack = list(direct)
        while stack:
            current = stack.pop(0)
            if current in seen:
                continue
            seen.append(current)
            stack.extend(self._dependents.get(current, []))
        return seen

