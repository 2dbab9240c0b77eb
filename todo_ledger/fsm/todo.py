"""Todo model for ledger-based task tracking.

This module provides the TodoItem class stored by the list store. Items are
frozen: every change produces a new instance through ``model_copy`` so that
published snapshots can share item objects with the live store.
"""

from datetime import datetime, timezone
from typing import Any, Optional
import uuid

import pydantic as pd

from todo_ledger.fsm.todo_status import TodoStatus


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_todo_id() -> str:
    """Return a fresh opaque todo identifier."""
    return uuid.uuid4().hex


class TodoItem(pd.BaseModel):
    """A single trackable unit of work.

    Attributes:
        id: Opaque identifier assigned by the store, never reused
        content: Non-empty, trimmed description of the task
        status: Current lifecycle status
        priority: Optional ordinal, lower values are more urgent
        created_at: When the store created the item (UTC)
        updated_at: When the store last changed the item (UTC)
    """

    id: str
    content: str = pd.Field(min_length=1)
    status: TodoStatus = TodoStatus.PENDING
    priority: Optional[int] = pd.Field(default=None, ge=0)
    created_at: datetime
    updated_at: datetime

    model_config = pd.ConfigDict(frozen=True, extra="forbid")

    def with_changes(self, updated_at: datetime, **changes: Any) -> "TodoItem":
        """Return a copy of this item with ``changes`` applied and ``updated_at`` refreshed."""
        return self.model_copy(update={**changes, "updated_at": updated_at})

    def describe(self) -> str:
        """Short human-readable form used in progress messages."""
        return f"{self.content} ({self.status.value})"

    def __repr__(self) -> str:
        return (
            f"TodoItem(id={self.id!r}, content={self.content!r}, "
            f"status={self.status.value!r}, priority={self.priority})"
        )
