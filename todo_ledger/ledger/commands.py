"""Command interface for the todo ledger.

TodoCommandHandler is the single entry point used by the tool-invocation
layer. It validates a command, runs it through the concurrency guard, emits a
progress event for every committed mutation and returns a result model.

``execute`` raises typed TodoLedgerError subclasses; ``dispatch`` wraps the
same flow and always returns a CommandResponse, which is what a tool
framework serializes back to the agent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from todo_ledger.fsm.todo import TodoItem
from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.ledger.contracts import (
    AddCommand,
    ClearCommand,
    ClearResult,
    CommandResponse,
    CommandResult,
    ErrorPayload,
    ItemResult,
    ListCommand,
    ListResult,
    RemoveCommand,
    SetStatusCommand,
    UpdateCommand,
    parse_command,
)
from todo_ledger.errors import TodoLedgerError, ValidationError
from todo_ledger.ledger.events import TodoEvent, TodoEventStream, TodoEventType
from todo_ledger.ledger.guard import AsyncConcurrencyGuard, ConcurrencyGuard
from todo_ledger.ledger.list_store import TodoListStore, order_items

logger = logging.getLogger(__name__)

Command = Union[AddCommand, UpdateCommand, SetStatusCommand, RemoveCommand, ClearCommand, ListCommand]

_STATUS_ICONS = {
    TodoStatus.PENDING: "[ ]",
    TodoStatus.IN_PROGRESS: "[~]",
    TodoStatus.COMPLETED: "[x]",
}


def render_markdown(items: Iterable[TodoItem]) -> str:
    """Render items as the plain-text block returned to the model."""
    items = list(items)
    if not items:
        return "No todos found."
    lines = ["Current todos:", ""]
    for item in items:
        priority = f" (priority {item.priority})" if item.priority is not None else ""
        lines.append(f"{_STATUS_ICONS[item.status]} {item.content}{priority} (ID: {item.id})")
    return "\n".join(lines)


def command_action(payload: Union[Command, Dict[str, Any]]) -> Optional[str]:
    """Best-effort action name of a command or raw payload, for error envelopes."""
    if isinstance(payload, dict):
        action = payload.get("action")
        return action if isinstance(action, str) else None
    return getattr(payload, "action", None)


class TodoCommandHandler:
    """Runs todo commands against one guarded list."""

    def __init__(self, guard: ConcurrencyGuard, events: Optional[TodoEventStream] = None):
        """Initialize the handler.

        Args:
            guard: Guard owning the list this handler operates on.
            events: Stream receiving one event per committed mutation.
        """
        self._guard = guard
        self._async_guard = AsyncConcurrencyGuard(guard)
        self._events = events if events is not None else TodoEventStream()

    @property
    def guard(self) -> ConcurrencyGuard:
        return self._guard

    @property
    def events(self) -> TodoEventStream:
        return self._events

    def execute(self, command: Union[Command, Dict[str, Any]]) -> CommandResult:
        """Run one command.

        Args:
            command: A command model, or a raw payload dict with an ``action`` key.

        Returns:
            ItemResult, ClearResult or ListResult.

        Raises:
            TodoLedgerError: The command failed; the list is unchanged.
        """
        result, _ = self._run(command)
        return result

    async def aexecute(self, command: Union[Command, Dict[str, Any]]) -> CommandResult:
        """Coroutine variant of ``execute`` for cooperative callers."""
        result, _ = await self._arun(command)
        return result

    def dispatch(self, payload: Union[Command, Dict[str, Any]]) -> CommandResponse:
        """Run one command and report success or a typed error without raising."""
        action = command_action(payload)
        try:
            result, items = self._run(payload)
        except TodoLedgerError as e:
            return CommandResponse(ok=False, action=action, error=ErrorPayload.from_error(e))
        return CommandResponse(ok=True, action=action, result=result, text=render_markdown(items))

    async def adispatch(self, payload: Union[Command, Dict[str, Any]]) -> CommandResponse:
        """Coroutine variant of ``dispatch``."""
        action = command_action(payload)
        try:
            result, items = await self._arun(payload)
        except TodoLedgerError as e:
            return CommandResponse(ok=False, action=action, error=ErrorPayload.from_error(e))
        return CommandResponse(ok=True, action=action, result=result, text=render_markdown(items))

    def _run(self, command: Union[Command, Dict[str, Any]]) -> Tuple[CommandResult, List[TodoItem]]:
        """Execute ``command`` and also return the ordered items it left committed."""
        command = self._coerce(command)
        if isinstance(command, ListCommand):
            result = self._list(command)
            return result, result.items

        operation, expected_version = self._plan(command)
        try:
            outcome, snapshot = self._guard.mutate(operation, expected_version)
        except TodoLedgerError as e:
            self._log_failure(command, e)
            raise
        return self._finish(command, outcome, snapshot.version), order_items(snapshot.items)

    async def _arun(
        self, command: Union[Command, Dict[str, Any]]
    ) -> Tuple[CommandResult, List[TodoItem]]:
        command = self._coerce(command)
        if isinstance(command, ListCommand):
            result = self._list(command)
            return result, result.items

        operation, expected_version = self._plan(command)
        try:
            outcome, snapshot = await self._async_guard.mutate(operation, expected_version)
        except TodoLedgerError as e:
            self._log_failure(command, e)
            raise
        return self._finish(command, outcome, snapshot.version), order_items(snapshot.items)

    @staticmethod
    def _coerce(command: Union[Command, Dict[str, Any]]) -> Command:
        if isinstance(command, dict):
            return parse_command(command)
        if isinstance(
            command,
            (AddCommand, UpdateCommand, SetStatusCommand, RemoveCommand, ClearCommand, ListCommand),
        ):
            return command
        raise ValidationError(f"Unsupported todo command: {type(command).__name__}")

    def _list(self, command: ListCommand) -> ListResult:
        items, version = self._guard.list(command.status_filter)
        return ListResult(items=items, version=version)

    def _plan(self, command: Command):
        """Translate a mutating command into a store operation.

        The operation also captures the pre-mutation item for update and
        status messages, so events describe both sides of the change.
        """
        if isinstance(command, AddCommand):

            def add(store: TodoListStore):
                return None, store.add(command.content, command.priority)

            return add, command.expected_version

        if isinstance(command, UpdateCommand):
            changes: Dict[str, Any] = {}
            if command.content_supplied:
                changes["content"] = command.content
            if command.priority_supplied:
                changes["priority"] = command.priority

            def update(store: TodoListStore):
                before = store.get(command.id)
                return before, store.update(command.id, **changes)

            return update, command.expected_version

        if isinstance(command, SetStatusCommand):

            def set_status(store: TodoListStore):
                before = store.get(command.id)
                return before, store.transition(command.id, command.status)

            return set_status, command.expected_version

        if isinstance(command, RemoveCommand):
            return (lambda store: (None, store.remove(command.id))), command.expected_version

        if isinstance(command, ClearCommand):
            return (lambda store: (None, store.clear())), command.expected_version

        raise ValidationError(f"Unsupported todo command: {type(command).__name__}")

    def _finish(self, command: Command, outcome, version: int) -> CommandResult:
        before, value = outcome
        if isinstance(command, ClearCommand):
            logger.info(f"Cleared {value} todo(s), list now at v{version}")
            self._emit(TodoEventType.TODOS_CLEARED, f"Cleared {value} todo(s).", version)
            return ClearResult(removed_count=value, version=version)

        item: TodoItem = value
        if isinstance(command, AddCommand):
            logger.info(f"Created todo {item.id} at v{version}: {item.content}")
            self._emit(TodoEventType.TODO_CREATED, f"Created todo: {item.content}", version, item.id)
        elif isinstance(command, UpdateCommand):
            logger.info(f"Updated todo {item.id} at v{version}")
            self._emit(
                TodoEventType.TODO_UPDATED,
                f"Updated todo from '{before.describe()}' to '{item.describe()}'",
                version,
                item.id,
            )
        elif isinstance(command, SetStatusCommand):
            logger.info(
                f"Moved todo {item.id} {before.status.value} -> {item.status.value} at v{version}"
            )
            self._emit(
                TodoEventType.TODO_STATUS_CHANGED,
                f"Updated todo from '{before.describe()}' to '{item.describe()}'",
                version,
                item.id,
            )
        elif isinstance(command, RemoveCommand):
            logger.info(f"Removed todo {item.id} at v{version}")
            self._emit(TodoEventType.TODO_REMOVED, f"Removed todo: {item.content}", version, item.id)
        return ItemResult(item=item, version=version)

    def _emit(
        self, event_type: TodoEventType, message: str, version: int, item_id: Optional[str] = None
    ) -> None:
        self._events.emit(
            TodoEvent(event_type=event_type, message=message, version=version, item_id=item_id)
        )

    @staticmethod
    def _log_failure(command: Command, error: TodoLedgerError) -> None:
        if error.kind == "PersistenceError":
            logger.error(f"{command.action} failed and was rolled back: {error.message}")
        else:
            logger.debug(f"{command.action} rejected ({error.kind}): {error.message}")
