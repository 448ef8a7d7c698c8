"""Listener management for wildbus.

This module provides ListenerEntry (individual registration), Subscription
(the handle returned to callers) and ListenerRegistry (exact-name table plus
wildcard list, both kept in priority order).
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any
from uuid import uuid4

from wildbus.matching import is_wildcard_pattern, match_pattern

if TYPE_CHECKING:
    from wildbus.types import Listener


def _by_priority(entry: ListenerEntry) -> int:
    return -entry.priority


@dataclass(eq=False)
class ListenerEntry:
    """Represents a registered listener.

    Entries compare by identity, so the same callback registered twice gives
    two independent entries.

    Attributes:
        id: Unique identifier for this registration.
        pattern: The event name or wildcard pattern subscribed to.
        callback: The listener function (sync or async).
        priority: Execution priority (higher = earlier execution).
        once: If True, the entry is removed after its first completed dispatch.
        is_wildcard: Whether ``pattern`` contains a wildcard segment.
        with_name: If True, the callback receives ``(event_name, payload)``.
    """

    id: str
    pattern: str
    callback: Listener
    priority: int = 0
    once: bool = False
    is_wildcard: bool = False
    with_name: bool = False

    @property
    def name(self) -> str:
        """Get the listener function name."""
        return getattr(self.callback, "__name__", repr(self.callback))

    def invoke(self, event_name: str, payload: Any) -> Any:
        """Call the listener and return whatever it returns."""
        if self.with_name:
            return self.callback(event_name, payload)  # type: ignore[call-arg]
        return self.callback(payload)


class Subscription:
    """Handle for a single registration.

    Holds the entry id and the owning registry; ``off()`` removes exactly
    that entry and may be called any number of times.

    Example:
        sub = bus.subscribe("user:login", handle_login)
        sub.off()
        sub.off()  # no-op
    """

    __slots__ = ("id", "pattern", "_registry")

    def __init__(self, registry: ListenerRegistry, entry: ListenerEntry) -> None:
        self.id = entry.id
        self.pattern = entry.pattern
        self._registry = registry

    def off(self) -> None:
        """Remove this listener."""
        self._registry.remove(self.id)

    @property
    def active(self) -> bool:
        """Check if the listener is still registered."""
        return self.id in self._registry

    def __repr__(self) -> str:
        state = "active" if self.active else "off"
        return f"<Subscription {self.pattern!r} {self.id} {state}>"


class ListenerRegistry:
    """Manages listeners with priority ordering and wildcard support.

    Exact subscriptions are stored per event name; subscriptions whose
    pattern has a ``*`` or ``**`` segment go to a single wildcard list.
    Every list is sorted by priority (highest first) and ties keep
    insertion order.

    Example:
        registry = ListenerRegistry()
        entry = registry.subscribe("device:*:on", my_listener, priority=10)
        entries = registry.collect("device:light:on")
        registry.remove(entry.id)
    """

    def __init__(self) -> None:
        """Initialize an empty listener registry."""
        self._exact: dict[str, list[ListenerEntry]] = {}
        self._wildcard: list[ListenerEntry] = []
        self._index: dict[str, ListenerEntry] = {}
        self._lock = threading.RLock()

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._index

    def subscribe(
        self,
        pattern: str,
        callback: Listener,
        priority: int = 0,
        once: bool = False,
        with_name: bool = False,
    ) -> ListenerEntry:
        """Register a listener for an event name or pattern.

        Args:
            pattern: Exact event name or wildcard pattern.
            callback: Listener function (sync or async).
            priority: Execution priority (higher = earlier, default 0).
            once: If True, listener is removed after its first dispatch.
            with_name: If True, the listener also receives the event name.

        Returns:
            The new entry.
        """
        entry = ListenerEntry(
            id=str(uuid4()),
            pattern=pattern,
            callback=callback,
            priority=priority,
            once=once,
            is_wildcard=is_wildcard_pattern(pattern),
            with_name=with_name,
        )

        with self._lock:
            if entry.is_wildcard:
                self._wildcard.append(entry)
                self._wildcard.sort(key=_by_priority)
            else:
                entries = self._exact.setdefault(pattern, [])
                entries.append(entry)
                entries.sort(key=_by_priority)
            self._index[entry.id] = entry

        return entry

    def remove(self, entry_id: str) -> bool:
        """Remove an entry by its ID.

        Args:
            entry_id: The ``id`` of an entry returned from subscribe().

        Returns:
            True if the entry was found and removed, False otherwise.
        """
        with self._lock:
            entry = self._index.pop(entry_id, None)
            if entry is None:
                return False

            if entry.is_wildcard:
                self._wildcard.remove(entry)
            else:
                entries = self._exact[entry.pattern]
                entries.remove(entry)
                if not entries:
                    del self._exact[entry.pattern]
            return True

    def collect(self, event_name: str) -> list[ListenerEntry]:
        """Get every entry that should receive ``event_name``.

        Exact entries come first, then matching wildcard entries; the
        combined list is re-sorted by priority, so ties keep that order.

        Args:
            event_name: The concrete event name being dispatched.

        Returns:
            Entries sorted by priority (highest first).
        """
        with self._lock:
            entries = list(self._exact.get(event_name, ()))
            entries.extend(w for w in self._wildcard if match_pattern(w.pattern, event_name))
        entries.sort(key=_by_priority)
        return entries

    def prune_once(self, entries: Iterable[ListenerEntry]) -> None:
        """Remove the once-entries of a completed dispatch that are still registered."""
        for entry in entries:
            if entry.once:
                self.remove(entry.id)

    def clear(self, pattern: str | None = None) -> None:
        """Remove all entries, or those registered under ``pattern``.

        With a name, removes the exact entries for that name and the wildcard
        entries whose pattern string is identical to it. Wildcard entries that
        merely match the name are kept.
        """
        with self._lock:
            if pattern is None:
                self._exact.clear()
                self._wildcard.clear()
                self._index.clear()
                return

            removed = self._exact.pop(pattern, [])
            removed.extend(w for w in self._wildcard if w.pattern == pattern)
            self._wildcard = [w for w in self._wildcard if w.pattern != pattern]
            for entry in removed:
                del self._index[entry.id]

    def count_exact(self, event_name: str) -> int:
        """Count exact entries for ``event_name`` (wildcards excluded)."""
        with self._lock:
            return len(self._exact.get(event_name, ()))

    def exact_names(self) -> list[str]:
        """Get the event names that have exact entries."""
        with self._lock:
            return list(self._exact)

    def handler_count(self) -> int:
        """Count all entries, exact and wildcard."""
        with self._lock:
            return len(self._index)
