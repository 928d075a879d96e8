"""Global event bus for editor notifications.

The bus carries UI feedback only: status-bar messages and "something changed,
redraw" notices. Engine code never depends on it for results; anything that
needs a return value uses a direct call.

Handlers run synchronously in the publishing thread. A failing handler is
logged and skipped so one broken panel can't stop the others from updating.
"""

import logging
from collections.abc import Callable
from contextlib import suppress
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class EditorEvent:
    """Base class for all editor events."""

    pass


@dataclass
class MessageEvent(EditorEvent):
    """Event for showing a line in the editor's status bar."""

    text: str
    is_error: bool = False


@dataclass
class AutomapStatusEvent(EditorEvent):
    """Fired after an automap run finishes.

    Attributes:
        description: Undo label of the command that ran.
        changed_cells: Number of cell writes that changed a value.
        passes: Number of passes the applier made.
        converged: False if an UntilStable rule set hit its iteration cap.
    """

    description: str
    changed_cells: int
    passes: int
    converged: bool


@dataclass
class LayerChangedEvent(EditorEvent):
    """Fired when a tile layer's contents changed and views must redraw."""

    layer: Any  # Avoid circular imports


class EventBus:
    """Simple event bus for publish/subscribe pattern."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[Callable]] = {}

    def subscribe(self, event_type: type, handler: Callable) -> None:
        """Subscribe a handler to an event type."""
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: Callable) -> None:
        """Unsubscribe a handler from an event type."""
        if event_type in self._handlers:
            with suppress(ValueError):
                self._handlers[event_type].remove(handler)

    def publish(self, event: EditorEvent) -> None:
        """Publish an event to all subscribed handlers."""
        event_type = type(event)
        if event_type in self._handlers:
            # Copy the handler list to allow safe subscribe/unsubscribe during dispatch
            for handler in list(self._handlers[event_type]):
                try:
                    handler(event)
                except Exception:
                    logger.exception(f"Error handling event {event_type.__name__}")


# Global event bus instance
_global_event_bus = EventBus()


def subscribe_to_event(event_type: type, handler: Callable) -> None:
    """Subscribe to an event type globally."""
    _global_event_bus.subscribe(event_type, handler)


def unsubscribe_from_event(event_type: type, handler: Callable) -> None:
    """Unsubscribe from an event type globally."""
    _global_event_bus.unsubscribe(event_type, handler)


def publish_event(event: EditorEvent) -> None:
    """Publish an event globally."""
    _global_event_bus.publish(event)


def reset_event_bus_for_testing() -> None:
    """Reset the global event bus. Use only in tests."""
    global _global_event_bus
    _global_event_bus = EventBus()
