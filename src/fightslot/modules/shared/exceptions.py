"""
Domain exceptions for the FightSlot client.

Purpose
-------
Player-facing failures raised by the contract registry, the chain
reconciler and the fight orchestrator. The presentation layer turns these
into messages; infrastructure failures (RPC, wallet transport) live in
``fightslot.core.exceptions`` and are usually wrapped by the exceptions
below before they reach a caller.

Design Notes
------------
- All domain exceptions inherit from `FightSlotDomainException` and share
  the infrastructure structure: `message`, `details`, `severity`,
  `is_retryable`, `error_code`, `to_dict()`.
- No domain error is fatal to the session. The fight orchestrator is always
  back in IDLE before one of these reaches the caller.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from fightslot.core.exceptions import ErrorSeverity


class FightSlotDomainException(Exception):
    """
    Base exception for all FightSlot domain-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the user can retry the operation
        error_code: Optional code for programmatic handling
    """

    DEFAULT_SEVERITY: ErrorSeverity = ErrorSeverity.ERROR
    DEFAULT_RETRYABLE: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: Optional[ErrorSeverity] = None,
        is_retryable: Optional[bool] = None,
        error_code: Optional[str] = None,
    ) -> None:
        self.message: str = message
        self.details: Dict[str, Any] = details or {}
        self.severity: ErrorSeverity = severity or self.DEFAULT_SEVERITY
        self.is_retryable: bool = (
            is_retryable if is_retryable is not None else self.DEFAULT_RETRYABLE
        )
        self.error_code: str = error_code or self.__class__.__name__
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
            "severity": self.severity.value,
            "is_retryable": self.is_retryable,
        }

    def __str__(self) -> str:
        details_str = f" | Details: {self.details}" if self.details else ""
        return f"[{self.error_code}] {self.message}{details_str}"


# ============================================================================
# Contract registry
# ============================================================================


class UnknownContractMethodError(FightSlotDomainException):
    """Raised when a (contract, method) pair is not in the catalog."""

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, contract: str, method: str) -> None:
        self.contract = contract
        self.method = method
        super().__init__(
            f"Unknown contract method {contract}.{method}",
            details={"contract": contract, "method": method},
            error_code="UNKNOWN_CONTRACT_METHOD",
        )


class InvalidContractCallError(FightSlotDomainException):
    """
    Raised when call arguments do not match the method's ABI inputs.

    Args:
        contract: Contract kind name
        method: Method name
        reason: What was wrong (arity, type, range)
    """

    DEFAULT_SEVERITY = ErrorSeverity.ERROR

    def __init__(self, contract: str, method: str, reason: str) -> None:
        self.contract = contract
        self.method = method
        self.reason = reason
        super().__init__(
            f"Invalid call to {contract}.{method}: {reason}",
            details={"contract": contract, "method": method, "reason": reason},
            error_code="INVALID_CONTRACT_CALL",
        )


# ============================================================================
# Network reconciliation
# ============================================================================


class NetworkReconciliationError(FightSlotDomainException):
    """
    Raised when the wallet cannot be moved onto the required chain.

    Args:
        stage: Protocol step that failed ("switch", "register", "retry_switch")
        reason: Human-readable failure reason
        code: Wallet error code, when the wallet supplied one
        required_chain_id: Target chain id
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        stage: str,
        reason: str,
        code: Optional[int] = None,
        required_chain_id: Optional[int] = None,
    ) -> None:
        self.stage = stage
        self.reason = reason
        self.code = code
        self.required_chain_id = required_chain_id
        super().__init__(
            f"Could not switch wallet to chain {required_chain_id} during {stage}: {reason}",
            details={
                "stage": stage,
                "reason": reason,
                "code": code,
                "required_chain_id": required_chain_id,
            },
            error_code="NETWORK_RECONCILIATION_FAILED",
        )


# ============================================================================
# Fight
# ============================================================================


class FightTransactionError(FightSlotDomainException):
    """
    Raised when the fight transaction is rejected, reverts or times out.

    Args:
        address: Player address that submitted the fight
        reason: Human-readable failure reason
        tx_hash: Transaction hash, when one was obtained
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        address: str,
        reason: str,
        tx_hash: Optional[str] = None,
    ) -> None:
        self.address = address
        self.reason = reason
        self.tx_hash = tx_hash
        super().__init__(
            f"Fight transaction failed: {reason}",
            details={"address": address, "reason": reason, "tx_hash": tx_hash},
            error_code="FIGHT_TRANSACTION_FAILED",
        )


class FightAlreadyInProgressError(FightSlotDomainException):
    """Raised when a fight is requested while another one is in flight."""

    DEFAULT_SEVERITY = ErrorSeverity.INFO
    DEFAULT_RETRYABLE = True

    def __init__(self, state: str) -> None:
        self.state = state
        super().__init__(
            f"A fight is already in progress (state={state})",
            details={"state": state},
            error_code="FIGHT_IN_PROGRESS",
        )


class DataNotReadyError(FightSlotDomainException):
    """
    Raised when a caller demands values that are still loading.

    Args:
        fields: Names of the fields that are still pending
    """

    DEFAULT_SEVERITY = ErrorSeverity.DEBUG
    DEFAULT_RETRYABLE = True

    def __init__(self, fields: Sequence[str]) -> None:
        self.fields = list(fields)
        super().__init__(
            f"Data still loading: {', '.join(self.fields)}",
            details={"fields": self.fields},
            error_code="DATA_LOADING",
        )


__all__ = [
    "FightSlotDomainException",
    "UnknownContractMethodError",
    "InvalidContractCallError",
    "NetworkReconciliationError",
    "FightTransactionError",
    "FightAlreadyInProgressError",
    "DataNotReadyError",
]
