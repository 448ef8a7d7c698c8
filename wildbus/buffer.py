"""Pause buffer for wildbus.

While a bus is paused, publishes are captured here instead of being
dispatched. The buffer is bounded; once full, further events are dropped
without any error or notification.
"""

from __future__ import annotations

import threading
from collections import deque
from typing import Any, NamedTuple


class PendingEvent(NamedTuple):
    """An event captured while the bus was paused."""

    name: str
    payload: Any


class PauseBuffer:
    """Paused flag plus a bounded FIFO of pending events.

    Example:
        buffer = PauseBuffer(max_size=2)
        buffer.pause()
        buffer.offer("a", 1)
        buffer.offer("b", 2)
        buffer.offer("c", 3)   # dropped
        buffer.resume()
        buffer.drain()         # [PendingEvent("a", 1), PendingEvent("b", 2)]
    """

    def __init__(self, max_size: int = 1000) -> None:
        """Initialize an active, empty buffer.

        Args:
            max_size: Max events held while paused.
        """
        self.max_size = max_size
        self.paused = False
        self._pending: deque[PendingEvent] = deque()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._pending)

    def pause(self) -> None:
        """Start capturing events."""
        self.paused = True

    def resume(self) -> None:
        """Stop capturing events. Pending events stay until drained."""
        self.paused = False

    def offer(self, name: str, payload: Any) -> bool:
        """Capture an event if there is room.

        Returns:
            True if the event was stored, False if it was dropped.
        """
        with self._lock:
            if len(self._pending) >= self.max_size:
                return False
            self._pending.append(PendingEvent(name, payload))
            return True

    def resize(self, max_size: int) -> None:
        """Change the bound, dropping the newest pending events that no longer fit."""
        with self._lock:
            self.max_size = max_size
            while len(self._pending) > max_size:
                self._pending.pop()

    def drain(self) -> list[PendingEvent]:
        """Remove and return every pending event, oldest first."""
        with self._lock:
            pending = list(self._pending)
            self._pending.clear()
        return pending

    def clear(self) -> None:
        """Discard pending events and return to the active state."""
        with self._lock:
            self._pending.clear()
        self.paused = False
