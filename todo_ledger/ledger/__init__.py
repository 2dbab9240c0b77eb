"""Todo ledger: list store, concurrency guard, persistence and command interface."""

from todo_ledger.errors import (
    ConflictError,
    CorruptStateError,
    InvalidTransitionError,
    NotFoundError,
    PersistenceError,
    SessionClosedError,
    TodoLedgerError,
    ValidationError,
)
from todo_ledger.ledger.contracts import (
    AddCommand,
    ClearCommand,
    ClearResult,
    CommandResponse,
    ErrorPayload,
    ItemResult,
    ListCommand,
    ListResult,
    RemoveCommand,
    SetStatusCommand,
    TodoListSnapshot,
    UpdateCommand,
    parse_command,
)
from todo_ledger.ledger.list_store import TodoListStore
from todo_ledger.ledger.guard import AsyncConcurrencyGuard, ConcurrencyGuard
from todo_ledger.ledger.utils.snapshot import SnapshotStore
from todo_ledger.ledger.utils.config import LedgerConfig
from todo_ledger.ledger.events import TodoEvent, TodoEventStream, TodoEventType
from todo_ledger.ledger.commands import TodoCommandHandler, render_markdown
from todo_ledger.ledger.session import TodoSession

__all__ = [
    "TodoLedgerError",
    "ValidationError",
    "NotFoundError",
    "InvalidTransitionError",
    "ConflictError",
    "CorruptStateError",
    "PersistenceError",
    "SessionClosedError",
    "AddCommand",
    "UpdateCommand",
    "SetStatusCommand",
    "RemoveCommand",
    "ClearCommand",
    "ListCommand",
    "parse_command",
    "ItemResult",
    "ClearResult",
    "ListResult",
    "CommandResponse",
    "ErrorPayload",
    "TodoListSnapshot",
    "TodoListStore",
    "ConcurrencyGuard",
    "AsyncConcurrencyGuard",
    "SnapshotStore",
    "LedgerConfig",
    "TodoEvent",
    "TodoEventStream",
    "TodoEventType",
    "TodoCommandHandler",
    "render_markdown",
    "TodoSession",
]
