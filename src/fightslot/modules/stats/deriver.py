"""
Combat stat derivation.

Pure functions from synchronized fields to the numbers the HUD shows.
Unknown inputs propagate as ``None``; nothing here raises.

    hp_required          = (level - 1) * 10 + hp_require_base
    success_rate_percent = raw_success_rate / 100      (raw in [0, 10000])
    reward_display       = total_accumulated / 10**18  (2 places, half-up)
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from fightslot.core.config.manager import ConfigManager
from fightslot.core.logging.logger import get_logger
from fightslot.modules.shared.models import RewardAccount
from fightslot.modules.sync import plan as fields
from fightslot.modules.sync.cells import SyncSnapshot

logger = get_logger(__name__)

HP_PER_LEVEL = 10
SUCCESS_RATE_SCALE = 100
SUCCESS_RATE_MAX_RAW = 10_000
DEFAULT_REWARD_DECIMALS = 18
DEFAULT_DISPLAY_PLACES = 2


@dataclass(frozen=True)
class CombatDerived:
    hp_required: Optional[int] = None
    success_rate_percent: Optional[float] = None
    reward_display: Optional[Decimal] = None
    character_image_url: Optional[str] = None
    mob_image_url: Optional[str] = None


def hp_required(level: Optional[int], base: Optional[int]) -> Optional[int]:
    """
    >>> hp_required(1, 50)
    50
    >>> hp_required(5, 50)
    90
    >>> hp_required(None, 50) is None
    True
    """
    if level is None or base is None:
        return None
    return (int(level) - 1) * HP_PER_LEVEL + int(base)


def success_rate_percent(raw: Optional[int]) -> Optional[float]:
    """
    Convert the contract's basis-point success rate to a percentage.

    Values outside [0, 10000] are treated as a stale or mis-keyed read and
    yield ``None``.

    >>> success_rate_percent(7550)
    75.5
    """
    if raw is None:
        return None
    raw = int(raw)
    if raw < 0 or raw > SUCCESS_RATE_MAX_RAW:
        logger.warning(
            "Success rate out of range, treating as unknown",
            extra={"raw_success_rate": raw},
        )
        return None
    return raw / SUCCESS_RATE_SCALE


def reward_display(
    total_accumulated: Optional[int],
    decimals: int = DEFAULT_REWARD_DECIMALS,
    places: int = DEFAULT_DISPLAY_PLACES,
) -> Optional[Decimal]:
    """
    >>> reward_display(2500000000000000000)
    Decimal('2.50')
    """
    if total_accumulated is None:
        return None
    quantum = Decimal(1).scaleb(-places)
    value = Decimal(int(total_accumulated)).scaleb(-decimals)
    return value.quantize(quantum, rounding=ROUND_HALF_UP)


def _asset_base(key: str) -> str:
    return str(ConfigManager.get(key, "")).rstrip("/")


def character_image_url(
    angel: Optional[int],
    status: Optional[int],
    char_type: Optional[int],
    skill: Optional[int],
    base: Optional[str] = None,
) -> Optional[str]:
    """``<base>/<angel>/<status>/<type>/<skill>.png``, or None while any part is unknown."""
    parts = (angel, status, char_type, skill)
    if any(p is None for p in parts):
        return None
    root = (base or _asset_base("assets.character_image_base")).rstrip("/")
    return f"{root}/" + "/".join(str(int(p)) for p in parts) + ".png"


def mob_image_url(level: Optional[int], base: Optional[str] = None) -> Optional[str]:
    if level is None:
        return None
    root = (base or _asset_base("assets.mobster_image_base")).rstrip("/")
    return f"{root}/{int(level)}.png"


def derive(snapshot: SyncSnapshot) -> CombatDerived:
    """Bundle every derived value from the current synchronized fields."""
    level = snapshot.value(fields.CHAR_LEVEL)
    rewards: Any = snapshot.value(fields.REWARDS)
    accumulated = rewards.total_accumulated if isinstance(rewards, RewardAccount) else None

    return CombatDerived(
        hp_required=hp_required(level, snapshot.value(fields.HP_REQUIRE_BASE)),
        success_rate_percent=success_rate_percent(snapshot.value(fields.SUCCESS_RATE)),
        reward_display=reward_display(
            accumulated,
            decimals=int(ConfigManager.get("rewards.decimals", DEFAULT_REWARD_DECIMALS)),
            places=int(ConfigManager.get("rewards.display_places", DEFAULT_DISPLAY_PLACES)),
        ),
        character_image_url=character_image_url(
            snapshot.value(fields.ANGEL_MODIFIER),
            snapshot.value(fields.CHAR_STATUS),
            snapshot.value(fields.CHAR_TYPE),
            snapshot.value(fields.CHAR_SKILL),
        ),
        mob_image_url=mob_image_url(level),
    )
