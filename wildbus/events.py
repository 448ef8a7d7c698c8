"""Typed event payloads for wildbus.

Any object can be published as a payload. BaseEvent is a convenience for
payloads that carry their own event name: publishing an instance uses its
``event_type`` class variable as the event name, and an EventSchema can
register the class under that same name.
"""

from __future__ import annotations

import time
from typing import Any, ClassVar
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from wildbus.matching import is_wildcard_pattern, validate_name


class BaseEvent(BaseModel):
    """Base event class using Pydantic v2.

    Subclasses must set ``event_type`` to a concrete (wildcard-free) name.

    Example:
        class UserLoggedIn(BaseEvent):
            event_type: ClassVar[str] = "user:login"
            user_id: str

        bus.publish_sync(UserLoggedIn(user_id="42"))
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    event_type: ClassVar[str] = "base"
    id: str = Field(default_factory=lambda: str(uuid4()))
    timestamp: float = Field(default_factory=time.time)

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        validate_name(cls.event_type)
        if is_wildcard_pattern(cls.event_type):
            raise TypeError(f"{cls.__name__}.event_type must not be a wildcard pattern")
