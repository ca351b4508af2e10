"""
Listener storage for the FightSlot EventBus.

Exact names ("sync.field_resolved") and wildcard patterns ("sync.*") are
stored separately. Lookups return listeners ordered by
(priority, identifier) and prune ``once`` listeners atomically.

The registry is synchronous: every mutation happens on the session's
event loop between awaits, so no locking is needed.
"""

from __future__ import annotations

from fightslot.core.event.router import EventRouter
from fightslot.core.event.types import EventListener


def _order(listener: EventListener) -> tuple[int, str]:
    return (listener.priority.value, listener.identifier)


class ListenerRegistry:
    def __init__(self) -> None:
        self._listeners: dict[str, list[EventListener]] = {}
        self._wildcard_listeners: list[tuple[str, EventListener]] = []
        self._router = EventRouter()

    def add_listener(
        self,
        event_name: str,
        listener: EventListener,
        *,
        allow_duplicates: bool,
    ) -> bool:
        """Register a listener. Returns False when rejected as a duplicate."""
        if "*" in event_name:
            if not allow_duplicates and any(
                pattern == event_name and existing.identifier == listener.identifier
                for pattern, existing in self._wildcard_listeners
            ):
                return False
            self._wildcard_listeners.append((event_name, listener))
            self._wildcard_listeners.sort(key=lambda pl: _order(pl[1]))
            return True

        bucket = self._listeners.setdefault(event_name, [])
        if not allow_duplicates and any(
            existing.identifier == listener.identifier for existing in bucket
        ):
            return False
        bucket.append(listener)
        bucket.sort(key=_order)
        return True

    def remove_listener(self, event_name: str, identifier: str) -> bool:
        removed = False

        bucket = self._listeners.get(event_name)
        if bucket is not None:
            kept = [lst for lst in bucket if lst.identifier != identifier]
            removed = len(kept) < len(bucket)
            if kept:
                self._listeners[event_name] = kept
            else:
                del self._listeners[event_name]

        before = len(self._wildcard_listeners)
        self._wildcard_listeners = [
            (pattern, lst)
            for pattern, lst in self._wildcard_listeners
            if not (pattern == event_name and lst.identifier == identifier)
        ]
        return removed or len(self._wildcard_listeners) < before

    def clear_all(self) -> int:
        total = self.get_total_listener_count()
        self._listeners.clear()
        self._wildcard_listeners.clear()
        return total

    def extract_listeners_for_event(self, event_name: str) -> list[EventListener]:
        """
        Return every listener matching ``event_name`` in execution order.

        Listeners registered with ``once=True`` are removed before being
        returned, so a re-entrant publish cannot run them twice.
        """
        exact = list(self._listeners.get(event_name, ()))
        wildcard = [
            lst
            for pattern, lst in self._wildcard_listeners
            if self._router.matches(event_name, pattern)
        ]

        once_ids = {lst.identifier for lst in exact + wildcard if lst.once}
        if once_ids:
            if event_name in self._listeners:
                kept = [
                    lst for lst in self._listeners[event_name] if lst.identifier not in once_ids
                ]
                if kept:
                    self._listeners[event_name] = kept
                else:
                    del self._listeners[event_name]
            self._wildcard_listeners = [
                (pattern, lst)
                for pattern, lst in self._wildcard_listeners
                if not (lst.once and lst.identifier in once_ids)
            ]

        return sorted(exact + wildcard, key=_order)

    def get_listener_count_for_event(self, event_name: str) -> int:
        count = len(self._listeners.get(event_name, ()))
        count += sum(
            1
            for pattern, _ in self._wildcard_listeners
            if self._router.matches(event_name, pattern)
        )
        return count

    def get_total_listener_count(self) -> int:
        return sum(len(b) for b in self._listeners.values()) + len(
            self._wildcard_listeners
        )

    def get_all_event_keys(self) -> list[str]:
        keys = set(self._listeners)
        keys.update(pattern for pattern, _ in self._wildcard_listeners)
        return sorted(keys)
