"""Payload schemas for wildbus.

An EventSchema maps concrete event names to payload types. A bus built with
a schema validates (and coerces) every payload published under a registered
name before it is buffered or dispatched.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import TypeAdapter, ValidationError

from wildbus.errors import PayloadValidationError, UnknownEventError
from wildbus.events import BaseEvent
from wildbus.matching import is_wildcard_pattern, validate_name


class EventSchema:
    """Mapping of event names to payload types, validated with pydantic.

    Payload types may be pydantic models, dataclasses, TypedDicts, plain
    types or anything else ``pydantic.TypeAdapter`` accepts.

    Example:
        class Login(BaseModel):
            user_id: str

        schema = EventSchema({"user:login": Login, "user:logout": str})
        bus = EventBus(schema=schema)
        bus.publish_sync("user:login", {"user_id": "42"})  # listeners get Login(...)
    """

    def __init__(self, types: Mapping[str, Any] | None = None, *, strict: bool = False) -> None:
        """Initialize the schema.

        Args:
            types: Initial mapping of event name to payload type.
            strict: If True, names missing from the schema are rejected.
        """
        self.strict = strict
        self._adapters: dict[str, TypeAdapter[Any]] = {}
        for name, payload_type in (types or {}).items():
            self.register(name, payload_type)

    def __contains__(self, name: object) -> bool:
        return name in self._adapters

    def __len__(self) -> int:
        return len(self._adapters)

    def names(self) -> list[str]:
        """Get the registered event names."""
        return list(self._adapters)

    def register(self, name: str, payload_type: Any) -> None:
        """Register the payload type for a concrete event name.

        Raises:
            InvalidEventNameError: If ``name`` is empty or malformed.
            ValueError: If ``name`` is a wildcard pattern.
        """
        validate_name(name)
        if is_wildcard_pattern(name):
            raise ValueError(f"Cannot register a schema for wildcard pattern {name!r}")
        self._adapters[name] = TypeAdapter(payload_type)

    def register_events(self, *event_classes: type[BaseEvent]) -> None:
        """Register BaseEvent subclasses under their ``event_type``."""
        for event_class in event_classes:
            self.register(event_class.event_type, event_class)

    def check_name(self, name: str) -> None:
        """Reject names a strict schema does not define.

        Wildcard patterns are always accepted.

        Raises:
            UnknownEventError: If the schema is strict and ``name`` is unknown.
        """
        if self.strict and name not in self._adapters and not is_wildcard_pattern(name):
            raise UnknownEventError(name)

    def validate(self, name: str, payload: Any) -> Any:
        """Validate a payload published under ``name``.

        Returns:
            The validated payload (coerced to the registered type), or the
            payload unchanged if ``name`` has no registered type.

        Raises:
            UnknownEventError: If the schema is strict and ``name`` is unknown.
            PayloadValidationError: If the payload does not fit the type.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            self.check_name(name)
            return payload
        try:
            return adapter.validate_python(payload)
        except ValidationError as exc:
            raise PayloadValidationError(name, payload, exc.errors()) from exc
