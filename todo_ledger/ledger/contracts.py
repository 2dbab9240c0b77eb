"""Pydantic contracts for todo ledger commands, results and snapshots."""

from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

import pydantic as pd

from todo_ledger.fsm.todo import TodoItem
from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.errors import TodoLedgerError, ValidationError


class TodoListSnapshot(pd.BaseModel):
    """Complete, immutable state of a todo list at one version.

    This is the record written to disk and the value published to readers.
    """

    version: int = pd.Field(default=0, ge=0)
    items: Tuple[TodoItem, ...] = ()

    model_config = pd.ConfigDict(frozen=True, extra="forbid")

    @pd.model_validator(mode="after")
    def _ids_unique(self) -> "TodoListSnapshot":
        seen = set()
        for item in self.items:
            if item.id in seen:
                raise ValueError(f"duplicate todo id in snapshot: {item.id}")
            seen.add(item.id)
        return self

    def find(self, item_id: str) -> Optional[TodoItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None


class _Command(pd.BaseModel):
    model_config = pd.ConfigDict(extra="forbid", frozen=True)


class AddCommand(_Command):
    """Create a new pending todo."""

    action: Literal["add"] = "add"
    content: str
    priority: Optional[pd.StrictInt] = pd.Field(default=None, ge=0)
    expected_version: Optional[int] = None


class UpdateCommand(_Command):
    """Change the content and/or priority of an existing todo.

    An explicit ``priority: null`` clears the priority; omitting the field
    leaves it unchanged.
    """

    action: Literal["update"] = "update"
    id: str
    content: Optional[str] = None
    priority: Optional[pd.StrictInt] = pd.Field(default=None, ge=0)
    expected_version: Optional[int] = None

    @property
    def priority_supplied(self) -> bool:
        return "priority" in self.model_fields_set

    @property
    def content_supplied(self) -> bool:
        return self.content is not None


class SetStatusCommand(_Command):
    """Move a todo through the status state machine."""

    action: Literal["set_status"] = "set_status"
    id: str
    status: TodoStatus
    expected_version: Optional[int] = None


class RemoveCommand(_Command):
    """Delete one todo."""

    action: Literal["remove"] = "remove"
    id: str
    expected_version: Optional[int] = None


class ClearCommand(_Command):
    """Delete every todo as a single mutation."""

    action: Literal["clear"] = "clear"
    expected_version: Optional[int] = None


class ListCommand(_Command):
    """Read the list, optionally filtered by status."""

    action: Literal["list"] = "list"
    status_filter: Optional[TodoStatus] = None


TodoCommand = Annotated[
    Union[AddCommand, UpdateCommand, SetStatusCommand, RemoveCommand, ClearCommand, ListCommand],
    pd.Field(discriminator="action"),
]

_COMMAND_ADAPTER: pd.TypeAdapter = pd.TypeAdapter(TodoCommand)


def parse_command(payload: Dict[str, Any]) -> _Command:
    """Validate a raw tool-call payload into a command model.

    Args:
        payload: Dict with an ``action`` key and the action's fields

    Returns:
        The matching command model

    Raises:
        ValidationError: The payload does not match any command shape
    """
    try:
        return _COMMAND_ADAPTER.validate_python(payload)
    except pd.ValidationError as e:
        errors = e.errors()
        field = ".".join(str(part) for part in errors[0]["loc"]) if errors else None
        raise ValidationError(f"Invalid todo command: {e}", field=field) from e


class ItemResult(pd.BaseModel):
    """Result of add/update/set_status/remove."""

    item: TodoItem
    version: int


class ClearResult(pd.BaseModel):
    """Result of clear."""

    removed_count: int
    version: int


class ListResult(pd.BaseModel):
    """Result of list: an ordered snapshot of items and the version it reflects."""

    items: List[TodoItem]
    version: int


CommandResult = Union[ItemResult, ClearResult, ListResult]


class ErrorPayload(pd.BaseModel):
    """Typed error returned to the tool-invocation layer."""

    kind: str
    message: str
    retryable: bool = False

    @classmethod
    def from_error(cls, error: TodoLedgerError) -> "ErrorPayload":
        return cls(kind=error.kind, message=error.message, retryable=error.retryable)


class CommandResponse(pd.BaseModel):
    """Envelope returned by ``TodoCommandHandler.dispatch``.

    On success ``text`` is the plain-text rendering of the list as committed
    by (or read for) the command, which is what the tool result shows.
    """

    ok: bool
    action: Optional[str] = None
    result: Optional[Union[ItemResult, ClearResult, ListResult]] = None
    error: Optional[ErrorPayload] = None
    text: Optional[str] = None

    @pd.model_validator(mode="after")
    def _exactly_one_outcome(self) -> "CommandResponse":
        if self.ok and self.result is None:
            raise ValueError("successful response requires a result")
        if not self.ok and self.error is None:
            raise ValueError("failed response requires an error")
        return self
