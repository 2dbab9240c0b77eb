"""Progress notifications for committed todo mutations."""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Callable, Deque, List, Optional

import pydantic as pd

from todo_ledger.fsm.todo import utc_now

logger = logging.getLogger(__name__)


class TodoEventType(str, Enum):
    """Types of progress events."""

    TODO_CREATED = "todo_created"
    TODO_UPDATED = "todo_updated"
    TODO_STATUS_CHANGED = "todo_status_changed"
    TODO_REMOVED = "todo_removed"
    TODOS_CLEARED = "todos_cleared"


class TodoEvent(pd.BaseModel):
    """A description of one committed mutation."""

    event_type: TodoEventType
    message: str
    version: int
    item_id: Optional[str] = None
    timestamp: datetime = pd.Field(default_factory=utc_now)

    model_config = pd.ConfigDict(extra="forbid", frozen=True)


EventListener = Callable[[TodoEvent], None]


class TodoEventStream:
    """Fan-out of progress events to the caller's listeners.

    Events are also kept in a bounded buffer so a caller can drain what
    happened since its last look. Listener failures are logged and do not
    affect the command, which has already committed.
    """

    def __init__(self, buffer_size: int = 1000) -> None:
        """Initialize event stream.

        Args:
            buffer_size: Maximum number of events to buffer
        """
        self._buffer: Deque[TodoEvent] = deque(maxlen=buffer_size)
        self._listeners: List[EventListener] = []
        self._lock = threading.Lock()

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register ``listener`` and return a function that unregisters it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def emit(self, event: TodoEvent) -> None:
        with self._lock:
            if len(self._buffer) == self._buffer.maxlen:
                logger.debug("Event buffer full, dropping oldest event")
            self._buffer.append(event)
            listeners = list(self._listeners)

        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                logger.warning(f"Todo event listener failed on {event.event_type.value}: {e}")

    def drain(self) -> List[TodoEvent]:
        """Return and forget all buffered events, oldest first."""
        with self._lock:
            events = list(self._buffer)
            self._buffer.clear()
        return events
