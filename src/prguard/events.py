"""EventBus and inbound item events."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

    from prguard.pipeline import TriageItem

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Item actions that drive the triage lifecycle."""

    OPENED = "opened"
    EDITED = "edited"
    CLOSED = "closed"
    REOPENED = "reopened"


@dataclass(frozen=True, slots=True)
class ItemEvent:
    """Immutable record of an action on a work item.

    Attributes:
        event_type: The action that occurred.
        item: The item as it looks after the action.
    """

    event_type: EventType
    item: TriageItem


class EventBus:
    """Dispatches item events to registered handlers.

    Handlers are called sequentially in registration order.
    Exceptions are logged and reported to ``on_error`` but never
    propagated, so one failing event cannot take down the host.
    """

    def __init__(self, on_error: Callable[[ItemEvent, Exception], None] | None = None) -> None:
        self._handlers: dict[EventType, list[Callable[..., Any]]] = {et: [] for et in EventType}
        self._on_error = on_error

    def register(self, event_type: EventType, handler: Callable[..., Any]) -> None:
        """Append *handler* to the list for *event_type*."""
        self._handlers[event_type].append(handler)

    def unregister(self, event_type: EventType, handler: Callable[..., Any]) -> bool:
        """Remove first occurrence of *handler*. Return True if found."""
        handlers = self._handlers[event_type]
        try:
            handlers.remove(handler)
            return True
        except ValueError:
            return False

    async def emit(self, event: ItemEvent) -> list[Any]:
        """Dispatch *event* and return the results of the handlers that succeeded."""
        results: list[Any] = []
        for handler in self._handlers[event.event_type]:
            try:
                results.append(await handler(event))
            except Exception as exc:
                logger.error(
                    "Handler %r failed for %s on %s",
                    handler,
                    event.event_type.value,
                    event.item.key,
                    exc_info=True,
                )
                if self._on_error is not None:
                    self._on_error(event, exc)
        return results
