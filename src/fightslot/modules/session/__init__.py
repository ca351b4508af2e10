from fightslot.modules.session.service import (
    CombatSnapshot,
    DisplayMode,
    FightSlotSession,
)

__all__ = ["CombatSnapshot", "DisplayMode", "FightSlotSession"]
