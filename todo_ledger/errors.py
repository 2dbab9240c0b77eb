"""Error taxonomy for the todo ledger.

Every error carries a ``kind`` (the name reported to tool callers) and a
``retryable`` flag. Only conflicts and persistence failures are retryable.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from todo_ledger.fsm.todo_status import TodoStatus


class TodoLedgerError(Exception):
    """Base class for all ledger errors."""

    kind = "TodoLedgerError"
    retryable = False

    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ValidationError(TodoLedgerError):
    """Raised when a command is malformed or carries empty content."""

    kind = "ValidationError"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class NotFoundError(TodoLedgerError):
    """Raised when a command references an unknown todo id."""

    kind = "NotFoundError"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Todo with ID {item_id} not found")


class InvalidTransitionError(TodoLedgerError):
    """Raised when a status move is not permitted by the state machine."""

    kind = "InvalidTransitionError"

    def __init__(
        self,
        message: str,
        item_id: str | None = None,
        current: Optional["TodoStatus"] = None,
        requested: Optional["TodoStatus"] = None,
    ):
        self.item_id = item_id
        self.current = current
        self.requested = requested
        super().__init__(message)


class ConflictError(TodoLedgerError):
    """Raised when a caller's expected version no longer matches the list."""

    kind = "ConflictError"
    retryable = True

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict: expected version {expected}, current version is {actual}. "
            "Re-read the list and retry."
        )


class CorruptStateError(TodoLedgerError):
    """Raised when the persisted snapshot exists but cannot be parsed."""

    kind = "CorruptStateError"

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class PersistenceError(TodoLedgerError):
    """Raised when the snapshot cannot be read or written. The mutation was rolled back."""

    kind = "PersistenceError"
    retryable = True

    def __init__(self, message: str, path: Path | None = None):
        self.path = path
        super().__init__(message)


class SessionClosedError(TodoLedgerError):
    """Raised when a command reaches a session that has already been closed."""

    kind = "SessionClosedError"

    def __init__(self, message: str = "Todo session is closed"):
        super().__init__(message)
