"""wildbus - In-process sync/async event bus with wildcard patterns.

Listeners subscribe to exact event names or to segment wildcard patterns
(``user:*``, ``user:**``, ``**``) and are called in priority order. The bus
can be paused, buffering published events until it is resumed.

Example:
    from wildbus import EventBus

    bus = EventBus()

    @bus.on("device.*.changed", priority=10)
    async def handle_change(payload):
        print(f"Device {payload['id']} -> {payload['state']}")

    await bus.publish_async("device.light.changed", {"id": "light1", "state": "on"})
"""

import logging

from wildbus.buffer import PauseBuffer, PendingEvent
from wildbus.bus import EventBus
from wildbus.errors import (
    EventBusError,
    InvalidEventNameError,
    PayloadValidationError,
    UnknownEventError,
)
from wildbus.events import BaseEvent
from wildbus.handlers import ListenerEntry, ListenerRegistry, Subscription
from wildbus.matching import is_wildcard_pattern, match_pattern, split_segments
from wildbus.schema import EventSchema
from wildbus.types import AsyncListener, ErrorHandler, Listener, NamedListener, PayloadT, SyncListener

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    # Core
    "EventBus",
    "Subscription",
    "match_pattern",
    # Events
    "BaseEvent",
    "EventSchema",
    # Internals
    "ListenerEntry",
    "ListenerRegistry",
    "PauseBuffer",
    "PendingEvent",
    "is_wildcard_pattern",
    "split_segments",
    # Errors
    "EventBusError",
    "InvalidEventNameError",
    "PayloadValidationError",
    "UnknownEventError",
    # Types
    "Listener",
    "SyncListener",
    "AsyncListener",
    "NamedListener",
    "ErrorHandler",
    "PayloadT",
    # Metadata
    "__version__",
]
