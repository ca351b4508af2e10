"""
Wildcard matching for event names.

Patterns use ``*`` as a wildcard for any run of characters:
``"sync.*"`` matches ``"sync.field_resolved"``, ``"*.failed"`` matches
``"chain.failed"``. Matching is case-sensitive.
"""

from __future__ import annotations


class EventRouter:
    """
    Stateless wildcard matcher.

    >>> router = EventRouter()
    >>> router.matches("sync.field_resolved", "sync.*")
    True
    >>> router.matches("fight.state_changed", "sync.*")
    False
    >>> router.matches("anything", "*")
    True
    """

    def matches(self, event_name: str, pattern: str) -> bool:
        if pattern == "*":
            return True

        if "*" not in pattern:
            return event_name == pattern

        while "**" in pattern:
            pattern = pattern.replace("**", "*")

        parts = pattern.split("*")
        head, tail = parts[0], parts[-1]

        if not event_name.startswith(head) or not event_name.endswith(tail):
            return False
        if len(head) + len(tail) > len(event_name):
            return False

        # Middle pieces must appear in order between head and tail
        idx = len(head)
        limit = len(event_name) - len(tail)
        for mid in parts[1:-1]:
            if not mid:
                continue
            found = event_name.find(mid, idx, limit)
            if found == -1:
                return False
            idx = found + len(mid)

        return True
