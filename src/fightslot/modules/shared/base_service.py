"""
Base Service Foundation

Purpose
-------
Common base for the FightSlot domain services (chain reconciler, state
synchronizer, fight orchestrator). Gives each service config access, event
emission and structured logging helpers.

What this class does NOT do:
- Talk to the chain (services receive a gateway or wallet explicitly)
- Contain game-specific logic
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from logging import Logger

    from fightslot.core.config.manager import ConfigManager
    from fightslot.core.event.bus import EventBus

_LOG_LEVELS: Dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
}


class BaseService:
    """
    Args:
        config_manager: Configuration manager (class-level ``ConfigManager``)
        event_bus: Session event bus
        logger: Structured logger instance
    """

    def __init__(
        self,
        config_manager: type[ConfigManager],
        event_bus: EventBus,
        logger: Logger,
    ) -> None:
        self._config = config_manager
        self._events = event_bus
        self.log = logger

    def get_config(
        self, key: str, default: Optional[Any] = None, required: bool = False
    ) -> Any:
        """
        Safely retrieve a configuration value.

        Raises:
            ConfigurationError: If required=True and key is missing
        """
        from fightslot.core.exceptions import ConfigurationError

        value = self._config.get(key, default)
        if required and value is None:
            raise ConfigurationError(
                key, f"Required configuration key '{key}' is missing"
            )
        return value

    async def emit_event(
        self,
        event_type: str,
        data: Dict[str, Any],
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        await self._events.publish(event_type, {**data, **(context or {})})

    def log_operation(self, operation: str, **context: Any) -> None:
        self.log.info(
            f"Service operation: {operation}",
            extra={"operation": operation, **context},
        )

    def log_error(
        self,
        operation: str,
        error: BaseException,
        **context: Any,
    ) -> None:
        """
        Log a service error at the exception's own severity.

        A user rejecting a wallet prompt is not an ERROR; a misconfigured
        contract address is.
        """
        from fightslot.core.exceptions import get_error_severity, is_transient_error

        level = _LOG_LEVELS[get_error_severity(error).value]
        to_dict = getattr(error, "to_dict", None)
        self.log.log(
            level,
            f"Service error during {operation}: {error}",
            extra={
                "operation": operation,
                "error_type": type(error).__name__,
                "error_message": str(error),
                "error_details": to_dict() if callable(to_dict) else None,
                "retryable": is_transient_error(error),
                **context,
            },
        )
