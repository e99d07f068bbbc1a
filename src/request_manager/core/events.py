"""
Event surface.

The only way a caller observes a run: per-item results, the terminal
end notification, and error notifications.
"""

import asyncio
from enum import Enum
from typing import Any, Callable, Dict, List

import structlog

logger = structlog.get_logger(__name__)


class EventType(str, Enum):
    """Events emitted to the caller."""
    RESULT = "result"     # (error_or_none, ItemResult)
    END = "end"           # ()
    ERROR = "error"       # (RequestManagerError,)


class EventSurface:
    """
    Minimal listener registry.

    Listeners run synchronously in registration order. A listener that
    raises is logged and skipped so one faulty subscriber cannot stall a
    run.
    """

    def __init__(self):
        self._listeners: Dict[EventType, List[Callable[..., Any]]] = {
            event: [] for event in EventType
        }

    def on(self, event: EventType, callback: Callable[..., Any]) -> None:
        """Register a listener for an event."""
        self._listeners[EventType(event)].append(callback)

    def off(self, event: EventType, callback: Callable[..., Any]) -> bool:
        """
        Remove a listener.

        Returns:
            True if the listener was registered
        """
        listeners = self._listeners[EventType(event)]
        if callback in listeners:
            listeners.remove(callback)
            return True
        return False

    def listener_count(self, event: EventType) -> int:
        return len(self._listeners[EventType(event)])

    def emit(self, event: EventType, *args: Any) -> None:
        """Deliver an event to every listener now."""
        for callback in list(self._listeners[EventType(event)]):
            try:
                callback(*args)
            except Exception as e:
                logger.error(
                    "listener_failed",
                    event_type=EventType(event).value,
                    listener=getattr(callback, "__qualname__", repr(callback)),
                    error=str(e),
                )

    def emit_soon(self, event: EventType, *args: Any) -> None:
        """
        Deliver an event on a later iteration of the running loop.

        Listeners attached right after the triggering call still see it.
        """
        loop = asyncio.get_running_loop()
        loop.call_soon(self.emit, event, *args)
