"""In-process event bus.

Workflow code emits SystemEvents; subscribers such as the audit logger
receive them from a background worker, so a slow subscriber never holds
up a request.

Usage:
    from src.admin.events import emit

    await emit(SystemEvent(event_type=EventType.QUOTE_CREATED, entity="quotes", entity_id=7))

    # At startup:
    subscribe(audit_on_event)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from src.schemas.events import EventType, SystemEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[SystemEvent], Coroutine[Any, Any, None]]


class EventBus:
    """Queue-backed dispatcher for SystemEvents."""

    def __init__(self) -> None:
        self._handlers: list[tuple[EventHandler, frozenset[EventType] | None]] = []
        self._queue: asyncio.Queue[SystemEvent] | None = None
        self._worker: asyncio.Task[None] | None = None

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    def subscribe(self, handler: EventHandler, event_types: list[EventType] | None = None) -> None:
        """Register a handler for some event types, or all when None."""
        types = frozenset(event_types) if event_types is not None else None
        self._handlers.append((handler, types))
        logger.info(
            "Registered event subscriber %s for %s",
            handler.__name__,
            "all events" if types is None else sorted(t.value for t in types),
        )

    def unsubscribe(self, handler: EventHandler) -> None:
        self._handlers = [(h, t) for h, t in self._handlers if h != handler]

    def handlers_for(self, event_type: EventType) -> list[EventHandler]:
        return [h for h, types in self._handlers if types is None or event_type in types]

    async def emit(self, event: SystemEvent) -> None:
        """Queue an event for dispatch.

        When the bus has not been started (scripts, tests) the event is
        dispatched inline instead.
        """
        if not self.running or self._queue is None:
            await self.dispatch(event)
            return
        await self._queue.put(event)
        logger.debug("Event queued: %s (%s:%s)", event.event_type.value, event.entity, event.entity_id)

    async def dispatch(self, event: SystemEvent) -> None:
        """Deliver one event to every matching handler; failures are isolated."""
        handlers = self.handlers_for(event.event_type)
        if not handlers:
            return
        results = await asyncio.gather(*(h(event) for h in handlers), return_exceptions=True)
        for handler, result in zip(handlers, results, strict=True):
            if isinstance(result, Exception):
                logger.error(
                    "Event handler %s failed for %s: %s",
                    handler.__name__,
                    event.event_type.value,
                    result,
                )

    async def _run(self) -> None:
        assert self._queue is not None
        while True:
            event = await self._queue.get()
            try:
                await self.dispatch(event)
            except Exception:
                logger.exception("Error in event worker")
            finally:
                self._queue.task_done()

    async def start(self) -> None:
        """Start the background worker. Call during FastAPI lifespan startup."""
        if self.running:
            return
        self._queue = asyncio.Queue()
        self._worker = asyncio.create_task(self._run())
        logger.info("Event bus started with %d subscribers", len(self._handlers))

    async def stop(self) -> None:
        """Drain pending events and stop the worker."""
        if self._queue is not None:
            await self._queue.join()
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._queue = None
        logger.info("Event bus stopped")


# Module-level singleton
event_bus = EventBus()

subscribe = event_bus.subscribe
unsubscribe = event_bus.unsubscribe


async def emit(event: SystemEvent) -> None:
    await event_bus.emit(event)
