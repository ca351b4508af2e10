"""
Infrastructure exceptions for the FightSlot client.

Purpose
-------
Define the structured exception hierarchy for infrastructure-level concerns:
RPC transport failures, timeouts, wallet request errors and configuration
errors. Game-facing failures (network reconciliation, fight transaction)
live in ``fightslot.modules.shared.exceptions``.

Design Notes
------------
- All infrastructure exceptions inherit from
  `FightSlotInfrastructureException`.
- Each exception carries:
  - `message`: human-readable description
  - `details`: additional structured context (dict)
  - `severity`: `ErrorSeverity` value for logging/alerting
  - `is_retryable`: whether the user may retry the operation
  - `error_code`: short, stable identifier for programmatic use
- Nothing here retries automatically; `is_retryable` is a hint for the
  presentation layer ("try again").
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorSeverity(Enum):
    """Error severity levels for logging and alerting."""

    DEBUG = "debug"  # Expected, not concerning (e.g., data still loading)
    INFO = "info"  # Normal operation (e.g., user rejected a request)
    WARNING = "warning"  # Concerning but handled (e.g., RPC hiccup)
    ERROR = "error"  # Unexpected errors requiring attention
    CRITICAL = "critical"  # Misconfiguration preventing operation


class FightSlotInfrastructureException(Exception):
    """
    Base exception for all FightSlot infrastructure-level errors.

    Args:
        message: Human-readable error message
        details: Additional structured data about the error
        severity: Error severity level for logging handlers
        is_retryable: Whether the operation can be retried by the user
        error_code: Optional code for programmatic handling

    Example:
        >>> raise FightSlotInfrastructureException(
        ...     "RPC endpoint unreachable",
        ...     {"endpoint": "https://bsc-dataseed.binance.org/"}
        ... )
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

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"details={self.details!r}, "
            f"severity={self.severity.value!r}, "
            f"is_retryable={self.is_retryable!r}"
            ")"
        )


class ConfigurationError(FightSlotInfrastructureException):
    """
    Raised when a configuration key is invalid or missing.

    Args:
        config_key: The configuration key that has issues
        message: Description of the configuration problem
    """

    DEFAULT_SEVERITY = ErrorSeverity.CRITICAL
    DEFAULT_RETRYABLE = False

    def __init__(self, config_key: str, message: str) -> None:
        self.config_key = config_key
        super().__init__(
            f"Configuration error for {config_key}: {message}",
            details={"config_key": config_key, "message": message},
            error_code="CONFIG_ERROR",
        )


class RpcError(FightSlotInfrastructureException):
    """
    Raised when a contract read or write fails at the RPC layer.

    Covers unreachable endpoints, malformed responses and reverted calls.
    The user can re-trigger a refresh or fight; nothing retries on its own.

    Args:
        operation: "<CONTRACT>.<method>" that failed
        original_error: The underlying web3/transport exception
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    def __init__(
        self,
        operation: str,
        original_error: Optional[BaseException] = None,
        reason: Optional[str] = None,
    ) -> None:
        self.operation = operation
        self.original_error = original_error
        reason = reason or (str(original_error) if original_error else "unknown error")
        super().__init__(
            f"RPC error during {operation}: {reason}",
            details={
                "operation": operation,
                "error": reason,
                "error_type": type(original_error).__name__ if original_error else None,
            },
            error_code="RPC_ERROR",
        )


class RpcTimeoutError(RpcError):
    """Raised when a read, write or wallet request exceeds its time budget."""

    def __init__(self, operation: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(operation, reason=f"timed out after {timeout_seconds:g}s")
        self.details["timeout_seconds"] = timeout_seconds
        self.error_code = "RPC_TIMEOUT"


class WalletRequestError(FightSlotInfrastructureException):
    """
    Raised when the wallet answers an EIP-1193 request with an error.

    The numeric `code` is preserved so callers can branch on well-known
    codes (4001 user rejected, 4902 unrecognized chain).

    Args:
        method: JSON-RPC method name
        code: Wallet error code, if any
        message: Wallet-supplied message
    """

    DEFAULT_SEVERITY = ErrorSeverity.WARNING
    DEFAULT_RETRYABLE = True

    USER_REJECTED = 4001
    UNRECOGNIZED_CHAIN = 4902

    def __init__(self, method: str, code: Optional[int], message: str) -> None:
        self.method = method
        self.code = code
        super().__init__(
            f"Wallet request {method} failed: {message}",
            details={"method": method, "code": code, "wallet_message": message},
            error_code="WALLET_REQUEST_FAILED",
        )


# ============================================================================
# Helpers
# ============================================================================


def is_transient_error(exc: BaseException) -> bool:
    """True when the user can reasonably retry the failed operation."""
    retryable = getattr(exc, "is_retryable", None)
    if isinstance(retryable, bool):
        return retryable
    return isinstance(exc, (ConnectionError, TimeoutError))


def get_error_severity(exc: BaseException) -> ErrorSeverity:
    severity = getattr(exc, "severity", None)
    if isinstance(severity, ErrorSeverity):
        return severity
    return ErrorSeverity.ERROR


__all__ = [
    "ErrorSeverity",
    "FightSlotInfrastructureException",
    "ConfigurationError",
    "RpcError",
    "RpcTimeoutError",
    "WalletRequestError",
    "is_transient_error",
    "get_error_severity",
]
