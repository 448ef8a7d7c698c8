"""Core EventBus implementation for wildbus.

This module provides the EventBus class that combines the listener registry,
the wildcard matcher and the pause buffer into a sync/async event bus.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import logging
from collections.abc import Awaitable, Mapping
from typing import TYPE_CHECKING, Any, Callable, Union

from wildbus.buffer import PauseBuffer
from wildbus.errors import InvalidEventNameError
from wildbus.events import BaseEvent
from wildbus.handlers import ListenerEntry, ListenerRegistry, Subscription
from wildbus.matching import is_wildcard_pattern, validate_name
from wildbus.schema import EventSchema

if TYPE_CHECKING:
    from wildbus.types import ErrorHandler, Listener

logger = logging.getLogger(__name__)


def _check_limit(label: str, value: int) -> int:
    if value < 0:
        raise ValueError(f"{label} must be >= 0, got {value}")
    return value


class EventBus:
    """Sync/async event bus with wildcard patterns, priorities and pausing.

    Listeners are called one at a time in priority order (higher first).
    ``publish_sync`` does not await listener results; ``publish_async``
    awaits each listener before starting the next. While paused, published
    events are buffered and replayed on resume.

    Example:
        bus = EventBus(on_error=lambda err, name: print(name, err))

        @bus.on("user:*", priority=10)
        def audit(payload):
            print("audit", payload)

        sub = bus.subscribe("user:login", lambda payload: print(payload["id"]))
        bus.publish_sync("user:login", {"id": "42"})
        sub.off()
    """

    def __init__(
        self,
        *,
        on_error: ErrorHandler | None = None,
        max_listeners: int = 10,
        max_buffer_size: int = 1000,
        schema: EventSchema | Mapping[str, Any] | None = None,
    ) -> None:
        """Initialize EventBus.

        Args:
            on_error: Optional callback for listener exceptions. Without it,
                a failing listener aborts the dispatch and the exception
                reaches the publisher.
            max_listeners: Exact-name listener count above which a warning
                is logged (0 disables the warning).
            max_buffer_size: Max events buffered while paused.
            schema: Optional payload schema (or a mapping to build one from).
        """
        self._registry = ListenerRegistry()
        self._buffer = PauseBuffer(_check_limit("max_buffer_size", max_buffer_size))
        self._max_listeners = _check_limit("max_listeners", max_listeners)
        self._on_error = on_error
        self._tasks: set[asyncio.Future[Any]] = set()

        if schema is None or isinstance(schema, EventSchema):
            self._schema = schema
        else:
            self._schema = EventSchema(schema)

    # Context manager support (sync)
    def __enter__(self) -> EventBus:
        return self

    def __exit__(self, *args: Any) -> None:
        """Sync context manager exit - disposes the bus."""
        self.dispose()

    # Context manager support (async)
    async def __aenter__(self) -> EventBus:
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Async context manager exit - disposes the bus."""
        self.dispose()

    @property
    def on_error(self) -> ErrorHandler | None:
        """The error callback given at construction."""
        return self._on_error

    @property
    def schema(self) -> EventSchema | None:
        return self._schema

    @property
    def is_paused(self) -> bool:
        return self._buffer.paused

    @property
    def buffered_count(self) -> int:
        """Number of events waiting for resume."""
        return len(self._buffer)

    @property
    def max_listeners(self) -> int:
        return self._max_listeners

    @property
    def max_buffer_size(self) -> int:
        return self._buffer.max_size

    # Configuration
    def set_max_listeners(self, n: int) -> EventBus:
        """Set the per-event listener count that triggers a leak warning.

        Set to 0 to disable the warning.

        Returns:
            The bus, for chaining.
        """
        self._max_listeners = _check_limit("max_listeners", n)
        return self

    def set_max_buffer_size(self, n: int) -> EventBus:
        """Set the max number of events buffered while paused.

        When the buffer is full, new events are silently dropped.

        Returns:
            The bus, for chaining.
        """
        self._buffer.resize(_check_limit("max_buffer_size", n))
        return self

    # Subscription methods
    def subscribe(
        self,
        pattern: str,
        listener: Listener,
        *,
        once: bool = False,
        priority: int = 0,
        with_name: bool = False,
    ) -> Subscription:
        """Subscribe a listener to an event name or wildcard pattern.

        Patterns use ``:`` or ``.`` between segments; a ``*`` segment matches
        one segment and ``**`` matches one or more.

        Args:
            pattern: Event name or pattern to subscribe to.
            listener: Listener function (sync or async).
            once: If True, listener is removed after its first dispatch.
            priority: Execution priority (higher = earlier, default 0).
            with_name: If True, listener is called as ``listener(name, payload)``.

        Returns:
            Subscription handle; call ``off()`` to unsubscribe.
        """
        validate_name(pattern)
        if self._schema is not None:
            self._schema.check_name(pattern)

        entry = self._registry.subscribe(pattern, listener, priority, once, with_name)

        if not entry.is_wildcard and self._max_listeners > 0:
            count = self._registry.count_exact(pattern)
            if count > self._max_listeners:
                logger.warning(
                    "Event %r has %d listeners (max: %d). Possible listener leak.",
                    pattern,
                    count,
                    self._max_listeners,
                )

        return Subscription(self._registry, entry)

    def unsubscribe(self, subscription: Union[Subscription, str]) -> bool:
        """Unsubscribe a listener by handle or ID.

        Returns:
            True if the listener was found and removed.
        """
        entry_id = subscription.id if isinstance(subscription, Subscription) else subscription
        return self._registry.remove(entry_id)

    def on(
        self,
        pattern: str,
        *,
        priority: int = 0,
        once: bool = False,
    ) -> Callable[[Listener], Listener]:
        """Decorator to subscribe a listener.

        Example:
            @bus.on("device.*.on")
            async def handle_on(payload):
                print(payload)
        """

        def decorator(listener: Listener) -> Listener:
            self.subscribe(pattern, listener, priority=priority, once=once)
            return listener

        return decorator

    def once(self, pattern: str, *, priority: int = 0) -> Callable[[Listener], Listener]:
        """Decorator to subscribe a one-time listener."""
        return self.on(pattern, priority=priority, once=True)

    def unsubscribe_all(self, pattern: str | None = None) -> EventBus:
        """Remove all listeners for ``pattern``, or every listener.

        With a name, removes its exact listeners and the wildcard listeners
        subscribed with that identical pattern string.

        Returns:
            The bus, for chaining.
        """
        self._registry.clear(pattern)
        return self

    def dispose(self) -> None:
        """Remove all listeners, discard buffered events and un-pause.

        The bus can still be used afterwards.
        """
        self._registry.clear()
        self._buffer.clear()
        logger.debug("Event bus disposed")

    # Publish methods
    def publish_sync(self, event: Union[BaseEvent, str], payload: Any = None) -> bool:
        """Publish an event, calling listeners synchronously in priority order.

        A listener that returns an awaitable is not awaited: it is scheduled
        on the running event loop, if any. Use ``publish_async`` to await
        listeners.

        Args:
            event: Event name, or a BaseEvent instance (which is also the payload).
            payload: Payload passed to listeners (ignored for BaseEvent).

        Returns:
            True if at least one listener was called. Always False while paused.
        """
        name, payload = self._prepare(event, payload)
        if self._buffer.paused:
            self._buffer.offer(name, payload)
            return False
        return self._dispatch_sync(name, payload)

    async def publish_async(self, event: Union[BaseEvent, str], payload: Any = None) -> bool:
        """Publish an event, awaiting each listener before calling the next.

        Args:
            event: Event name, or a BaseEvent instance (which is also the payload).
            payload: Payload passed to listeners (ignored for BaseEvent).

        Returns:
            True if at least one listener was called. Always False while paused.
        """
        name, payload = self._prepare(event, payload)
        if self._buffer.paused:
            self._buffer.offer(name, payload)
            return False
        return await self._dispatch_async(name, payload)

    # Pause / resume
    def pause(self) -> EventBus:
        """Buffer published events instead of dispatching them."""
        if not self._buffer.paused:
            logger.debug("Event bus paused")
        self._buffer.pause()
        return self

    def resume(self) -> EventBus:
        """Un-pause and replay buffered events in order through ``publish_sync`` dispatch.

        Listeners are looked up at replay time, so subscriptions made or
        removed while paused are honored.
        """
        self._buffer.resume()
        pending = self._buffer.drain()
        logger.debug("Event bus resumed, replaying %d event(s)", len(pending))
        for name, payload in pending:
            self._dispatch_sync(name, payload)
        return self

    async def resume_async(self) -> EventBus:
        """Un-pause and replay buffered events, awaiting each one before the next."""
        self._buffer.resume()
        pending = self._buffer.drain()
        logger.debug("Event bus resumed, replaying %d event(s)", len(pending))
        for name, payload in pending:
            await self._dispatch_async(name, payload)
        return self

    # Inspection
    def count_exact(self, name: str) -> int:
        """Count listeners subscribed to exactly ``name`` (wildcards excluded)."""
        return self._registry.count_exact(name)

    def exact_names(self) -> list[str]:
        """Get the event names that have exact listeners."""
        return self._registry.exact_names()

    def handler_count(self) -> int:
        """Count all listeners, exact and wildcard."""
        return self._registry.handler_count()

    # Conveniences
    async def wait(self, pattern: str) -> Any:
        """Wait for the next event matching ``pattern`` and return its payload.

        There is no timeout; wrap in ``asyncio.wait_for`` if needed. If the
        waiting task is cancelled, the listener is removed.
        """
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()

        def resolve(payload: Any) -> None:
            if not future.done():
                future.set_result(payload)

        subscription = self.subscribe(pattern, resolve, once=True)
        try:
            return await future
        finally:
            subscription.off()

    def pipe(
        self,
        target: EventBus,
        pattern: str = "**",
        *,
        asynchronous: bool = False,
    ) -> Subscription:
        """Forward events matching ``pattern`` to another bus under the same name.

        Args:
            target: Bus that receives the forwarded events.
            pattern: Which events to forward (default: all).
            asynchronous: If True, forward with ``publish_async`` and await it.

        Returns:
            Subscription handle; call ``off()`` to stop forwarding.
        """
        if target is self:
            raise ValueError("Cannot pipe an event bus into itself")

        if asynchronous:

            async def forward_async(name: str, payload: Any) -> None:
                await target.publish_async(name, payload)

            forward: Callable[[str, Any], Any] = forward_async
        else:

            def forward_sync(name: str, payload: Any) -> None:
                target.publish_sync(name, payload)

            forward = forward_sync

        logger.debug("Piping %r to %r", pattern, target)
        return self.subscribe(pattern, forward, with_name=True)  # type: ignore[arg-type]

    # Dispatch
    def _prepare(self, event: Union[BaseEvent, str], payload: Any) -> tuple[str, Any]:
        """Resolve the event name and validate the payload."""
        if isinstance(event, BaseEvent):
            name, payload = event.event_type, event
        else:
            name = validate_name(event)
            if is_wildcard_pattern(name):
                raise InvalidEventNameError(name)

        if self._schema is not None:
            payload = self._schema.validate(name, payload)
        return name, payload

    def _dispatch_sync(self, name: str, payload: Any) -> bool:
        entries = self._registry.collect(name)
        if not entries:
            return False

        for entry in entries:
            try:
                result = entry.invoke(name, payload)
            except Exception as exc:
                if self._on_error is None:
                    raise
                self._on_error(exc, name)
                continue

            if inspect.isawaitable(result):
                self._schedule(name, entry, result)

        self._registry.prune_once(entries)
        return True

    async def _dispatch_async(self, name: str, payload: Any) -> bool:
        entries = self._registry.collect(name)
        if not entries:
            return False

        for entry in entries:
            try:
                result = entry.invoke(name, payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                if self._on_error is None:
                    raise
                self._on_error(exc, name)

        self._registry.prune_once(entries)
        return True

    def _schedule(self, name: str, entry: ListenerEntry, awaitable: Awaitable[Any]) -> None:
        """Run an awaitable returned during sync dispatch without waiting for it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            logger.warning(
                "No running event loop; async listener %s for %r was not run",
                entry.name,
                name,
            )
            return

        task = asyncio.ensure_future(awaitable, loop=loop)
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._task_done, name))

    def _task_done(self, name: str, task: asyncio.Future[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is None:
            return
        if self._on_error is not None and isinstance(exc, Exception):
            self._on_error(exc, name)
        else:
            logger.error("Async listener for %r failed", name, exc_info=exc)
