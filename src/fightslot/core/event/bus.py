"""
EventBus for the FightSlot client.

Purpose
-------
Per-session publish/subscribe channel. The synchronizer publishes one event
per field arrival, the chain reconciler publishes switch/register outcomes
and the fight orchestrator publishes state transitions. The presentation
layer subscribes to whatever it renders.

Tiered concurrency (see ``fightslot.core.event.scheduler``):
- CRITICAL / HIGH: sequential, awaited, timeout-protected
- NORMAL: concurrent, awaited
- LOW: fire-and-forget

Listener timeouts come from ``ConfigManager`` keys
``core.event.listener_timeout.critical_seconds`` and
``core.event.listener_timeout.high_seconds``.
"""

from __future__ import annotations

import inspect
from typing import Any, Optional

from fightslot.core.config.manager import ConfigManager
from fightslot.core.event.metrics import EventMetrics, EventMetricsRecorder
from fightslot.core.event.registry import ListenerRegistry
from fightslot.core.event.scheduler import EventScheduler
from fightslot.core.event.types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)
from fightslot.core.logging.logger import get_logger, set_log_context

logger = get_logger(__name__)


def apply_event_log_context(event_name: str, payload: EventPayload) -> None:
    """
    Stamp subsequent log records with the event being dispatched.

    Only payload keys are recorded, plus the player address and cycle when
    the payload carries them.
    """
    set_log_context(
        event_name=event_name,
        event_keys=sorted(payload.keys()),
        player_address=payload.get("address"),
        cycle=payload.get("cycle"),
    )


class EventBus:
    """
    >>> bus = EventBus()
    >>> bus.subscribe("sync.field_resolved", on_field)
    >>> await bus.publish("sync.field_resolved", {"field": "char_hp", "value": 120})
    """

    def __init__(
        self,
        registry: Optional[ListenerRegistry] = None,
        scheduler: Optional[EventScheduler] = None,
        metrics: Optional[EventMetricsRecorder] = None,
        config_manager: Optional[type[ConfigManager]] = ConfigManager,
        *,
        enable_metrics: bool = True,
        critical_timeout_seconds: Optional[float] = None,
        high_timeout_seconds: Optional[float] = None,
    ) -> None:
        self._config_manager = config_manager
        self._registry = registry or ListenerRegistry()
        self._scheduler = scheduler or EventScheduler()
        self._metrics = metrics or EventMetricsRecorder()
        self._metrics_enabled = enable_metrics

        self._critical_timeout = self._load_timeout(
            "core.event.listener_timeout.critical_seconds",
            critical_timeout_seconds,
            5.0,
        )
        self._high_timeout = self._load_timeout(
            "core.event.listener_timeout.high_seconds",
            high_timeout_seconds,
            5.0,
        )

        logger.debug(
            "EventBus initialized",
            extra={
                "metrics_enabled": self._metrics_enabled,
                "critical_timeout_seconds": self._critical_timeout,
                "high_timeout_seconds": self._high_timeout,
            },
        )

    def _load_timeout(self, key: str, override: Optional[float], default: float) -> float:
        if override is not None:
            return float(override)
        if self._config_manager is None:
            return float(default)
        return self._config_manager.get_float(key, default)

    @staticmethod
    def _validate_callback_signature(callback: CallbackType) -> None:
        """Reject callbacks that cannot take exactly one payload argument."""
        try:
            sig = inspect.signature(callback)
        except (TypeError, ValueError):
            return

        params = [
            p
            for p in sig.parameters.values()
            if p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
        ]
        if len(params) != 1:
            name = getattr(callback, "__qualname__", None) or repr(callback)
            raise ValueError(
                f"Event listener must accept exactly 1 parameter (EventPayload), "
                f"got {len(params)} parameters for '{name}'"
            )

    # ------------------------------------------------------------------ #
    # Subscription
    # ------------------------------------------------------------------ #

    def subscribe(
        self,
        event_name: str,
        callback: CallbackType,
        *,
        priority: ListenerPriority = ListenerPriority.NORMAL,
        identifier: Optional[str] = None,
        once: bool = False,
        allow_duplicates: bool = False,
    ) -> str:
        """
        Subscribe ``callback`` to an event name or wildcard pattern.

        Returns the listener identifier for ``unsubscribe``.
        """
        self._validate_callback_signature(callback)

        listener = EventListener.from_callback(
            event_name, callback, priority, identifier, once
        )
        added = self._registry.add_listener(
            event_name, listener, allow_duplicates=allow_duplicates
        )

        if added:
            self._metrics.set_listener_count(self._registry.get_total_listener_count())
            logger.debug(
                "EventBus: subscribed listener",
                extra={
                    "event_name": event_name,
                    "listener_id": listener.identifier,
                    "priority": listener.priority.name,
                    "once": listener.once,
                },
            )
        else:
            logger.warning(
                "EventBus: duplicate listener prevented",
                extra={"event_name": event_name, "listener_id": listener.identifier},
            )

        return listener.identifier

    def unsubscribe(self, event_name: str, identifier: str) -> bool:
        removed = self._registry.remove_listener(event_name, identifier)
        if removed:
            self._metrics.set_listener_count(self._registry.get_total_listener_count())
            logger.debug(
                "EventBus: unsubscribed listener",
                extra={"event_name": event_name, "listener_id": identifier},
            )
        return removed

    def clear(self) -> None:
        total = self._registry.clear_all()
        self._metrics.set_listener_count(0)
        logger.debug(
            "EventBus: cleared all listeners",
            extra={"previous_listener_count": total},
        )

    # ------------------------------------------------------------------ #
    # Publish
    # ------------------------------------------------------------------ #

    async def publish(self, event_name: str, data: EventPayload) -> list[Any]:
        """
        Deliver ``data`` to every matching listener.

        Returns the results of CRITICAL, HIGH and NORMAL listeners. Listener
        failures are logged and never raised here.
        """
        if self._metrics_enabled:
            self._metrics.record_publish(event_name)

        apply_event_log_context(event_name, data)

        listeners = self._registry.extract_listeners_for_event(event_name)
        if not listeners:
            return []

        logger.debug(
            "EventBus: executing listeners",
            extra={"event_name": event_name, "listener_count": len(listeners)},
        )

        return await self._scheduler.execute(
            event_name=event_name,
            payload=data,
            listeners=listeners,
            metrics=self._metrics if self._metrics_enabled else None,
            logger=logger,
            critical_timeout=self._critical_timeout,
            high_timeout=self._high_timeout,
        )

    async def drain(self) -> None:
        """Wait for background (LOW) listeners to finish."""
        await self._scheduler.drain()

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def get_metrics(self) -> Optional[EventMetrics]:
        if not self._metrics_enabled:
            return None
        return self._metrics.snapshot()

    def get_listener_count(self, event_name: Optional[str] = None) -> int:
        if event_name is None:
            return self._registry.get_total_listener_count()
        return self._registry.get_listener_count_for_event(event_name)

    def get_all_events(self) -> list[str]:
        return self._registry.get_all_event_keys()
