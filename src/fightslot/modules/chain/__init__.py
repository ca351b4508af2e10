from fightslot.modules.chain.reconciler import (
    ChainDescriptor,
    ChainReconciler,
    ReconcileResult,
    ReconcileStep,
)

__all__ = ["ChainDescriptor", "ChainReconciler", "ReconcileResult", "ReconcileStep"]
