"""
Event system for the FightSlot client.

Each session owns its own ``EventBus``; there is no process-wide bus.
"""

from .bus import EventBus, apply_event_log_context
from .metrics import EventMetrics
from .types import (
    CallbackType,
    EventListener,
    EventPayload,
    ListenerPriority,
)

__all__ = [
    "EventBus",
    "EventMetrics",
    "EventPayload",
    "ListenerPriority",
    "EventListener",
    "CallbackType",
    "apply_event_log_context",
]
