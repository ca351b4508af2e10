from fightslot.modules.fight.orchestrator import FightOrchestrator, FightState

__all__ = ["FightOrchestrator", "FightState"]
