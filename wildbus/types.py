"""Type definitions for wildbus event bus."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar, Union

# TypeVar for payload types
PayloadT = TypeVar("PayloadT")

# Listener callback types
SyncListener = Callable[[Any], None]
"""Synchronous listener that receives a payload and returns nothing."""

AsyncListener = Callable[[Any], Awaitable[None]]
"""Asynchronous listener that receives a payload and returns an awaitable."""

Listener = Union[SyncListener, AsyncListener]
"""Union type for both sync and async listeners."""

NamedListener = Callable[[str, Any], Union[None, Awaitable[None]]]
"""Listener subscribed with ``with_name=True``; receives ``(event_name, payload)``."""

# Error callback type
ErrorHandler = Callable[[Exception, str], None]
"""Callback invoked when a listener raises an exception.

Args:
    error: The exception that was raised.
    event_name: The concrete name of the event being dispatched.
"""
