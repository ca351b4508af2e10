from fightslot.modules.stats.deriver import (
    CombatDerived,
    character_image_url,
    derive,
    hp_required,
    mob_image_url,
    reward_display,
    success_rate_percent,
)

__all__ = [
    "CombatDerived",
    "character_image_url",
    "derive",
    "hp_required",
    "mob_image_url",
    "reward_display",
    "success_rate_percent",
]
