"""Exceptions raised by wildbus.

Listener errors are never wrapped: they reach the publisher (or the
``on_error`` callback) unchanged. The classes here only cover invalid use
of the bus itself.
"""

from __future__ import annotations

from typing import Any


class EventBusError(Exception):
    """Base class for wildbus usage errors."""


class InvalidEventNameError(EventBusError, ValueError):
    """An event name or pattern is empty or has an empty segment."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Invalid event name or pattern: {name!r}")


class UnknownEventError(EventBusError, KeyError):
    """A strict schema was asked about an event name it does not define."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(name)

    def __str__(self) -> str:
        return f"Event {self.name!r} is not defined in the schema"


class PayloadValidationError(EventBusError, ValueError):
    """A published payload does not satisfy its schema type.

    Attributes:
        name: The event name the payload was published under.
        payload: The rejected payload.
        errors: The pydantic error list describing the failure.
    """

    def __init__(self, name: str, payload: Any, errors: list[dict[str, Any]]) -> None:
        self.name = name
        self.payload = payload
        self.errors = errors
        super().__init__(f"Invalid payload for event {name!r}: {len(errors)} validation error(s)")
