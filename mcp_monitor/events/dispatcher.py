"""Event dispatcher - fans classified log events out to registered sinks.

Sinks are the broadcast hub and the console renderer. A failing sink is
logged and never prevents delivery to the others.
"""

import asyncio
import inspect
from typing import Awaitable, Callable, List, Union

from ..logger import logger
from .base import LogEvent

EventHandler = Union[Callable[[LogEvent], None], Callable[[LogEvent], Awaitable[None]]]


class EventDispatcher:
    """Dispatches events to registered handlers.

    Handlers may be sync or async. All handlers run concurrently for each
    event and ``dispatch`` returns once every one of them has finished.
    """

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def on_event(self, handler: EventHandler) -> None:
        """Register a handler called with every dispatched event."""
        self._handlers.append(handler)

    async def dispatch(self, event: LogEvent) -> None:
        """Dispatch event to all registered handlers.

        Args:
            event: Event to dispatch
        """
        handlers = list(self._handlers)

        if not handlers:
            logger.debug(f"No handlers registered for event {event.event_type}")
            return

        tasks = []
        for handler in handlers:
            # Support both async and sync handlers
            if inspect.iscoroutinefunction(handler):
                tasks.append(asyncio.create_task(handler(event)))
            else:
                tasks.append(asyncio.create_task(asyncio.to_thread(handler, event)))

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for handler, result in zip(handlers, results):
            if isinstance(result, Exception):
                handler_name = getattr(handler, "__qualname__", repr(handler))
                logger.error(
                    f"Handler {handler_name} failed for event {event.event_type.value}: {result}",
                    exc_info=result,
                )
