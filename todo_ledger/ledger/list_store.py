"""In-memory list store for todo items.

TodoListStore is the authoritative, ordered collection of TodoItem objects.
It enforces the list invariants (unique ids, non-empty content, one version
bump per mutation, forward-only status moves) but performs no locking and no
I/O: ConcurrencyGuard wraps it with mutual exclusion, durable flushing and
rollback.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional

from todo_ledger.fsm.status_fsm import StatusMachine
from todo_ledger.fsm.todo import TodoItem, new_todo_id, utc_now
from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.ledger.contracts import TodoListSnapshot
from todo_ledger.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_UNSET = object()


def normalize_content(content: object) -> str:
    """Trim ``content`` and reject it when nothing is left.

    Raises:
        ValidationError: content is not a string or is blank
    """
    if not isinstance(content, str):
        raise ValidationError("Todo content must be a string", field="content")
    trimmed = content.strip()
    if not trimmed:
        raise ValidationError("Todo content must not be empty", field="content")
    return trimmed


def validate_priority(priority: object) -> Optional[int]:
    """Accept ``None`` or a non-negative int (bools are rejected)."""
    if priority is None:
        return None
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise ValidationError("Todo priority must be an integer", field="priority")
    if priority < 0:
        raise ValidationError("Todo priority must be >= 0", field="priority")
    return priority


def _order_key(indexed: tuple) -> tuple:
    index, item = indexed
    if item.priority is None:
        return (1, 0, index)
    return (0, item.priority, index)


def order_items(items) -> List[TodoItem]:
    """Sort by priority (unprioritized last), keeping insertion order for ties."""
    return [item for _, item in sorted(enumerate(items), key=_order_key)]


class TodoListStore:
    """Ordered collection of todo items with invariant enforcement.

    The store keeps items in insertion order; ``list()`` presents them by
    priority. Items are frozen models, so every change replaces the item in
    the underlying list rather than mutating it, and snapshots can share item
    objects safely.

    Attributes:
        version: Number of committed mutations applied to this list.
        status_machine: Validator for status moves.

    Example:
        >>> store = TodoListStore()
        >>> item = store.add("write tests")
        >>> store.transition(item.id, TodoStatus.IN_PROGRESS).status
        <TodoStatus.IN_PROGRESS: 'in_progress'>
        >>> store.version
        2
    """

    def __init__(
        self,
        snapshot: Optional[TodoListSnapshot] = None,
        status_machine: Optional[StatusMachine] = None,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_todo_id,
    ):
        """Initialize the store.

        Args:
            snapshot: Starting state. Defaults to an empty list at version 0.
            status_machine: Transition validator. Defaults to the terminal-completed policy.
            clock: Source of timestamps.
            id_factory: Source of new item ids.
        """
        snapshot = snapshot if snapshot is not None else TodoListSnapshot()
        self._items: List[TodoItem] = list(snapshot.items)
        self._version = snapshot.version
        self._status_machine = status_machine or StatusMachine()
        self._clock = clock
        self._id_factory = id_factory

    @property
    def version(self) -> int:
        """Get the list version (read-only)."""
        return self._version

    @property
    def status_machine(self) -> StatusMachine:
        return self._status_machine

    def __len__(self) -> int:
        return len(self._items)

    def snapshot(self) -> TodoListSnapshot:
        """Capture the current state as an immutable snapshot."""
        return TodoListSnapshot.model_construct(version=self._version, items=tuple(self._items))

    def restore(self, snapshot: TodoListSnapshot) -> None:
        """Replace the current state with ``snapshot``. Used to roll back failed mutations."""
        self._items = list(snapshot.items)
        self._version = snapshot.version

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise NotFoundError(item_id)

    def _bump(self) -> None:
        self._version += 1

    def get(self, item_id: str) -> TodoItem:
        return self._items[self._index_of(item_id)]

    def list(self, status: Optional[TodoStatus] = None) -> List[TodoItem]:
        """Return an ordered copy of the items, optionally filtered by status."""
        items = self._items if status is None else [i for i in self._items if i.status == status]
        return order_items(items)

    def add(self, content: str, priority: Optional[int] = None) -> TodoItem:
        """Append a new pending todo.

        Raises:
            ValidationError: content is blank or priority is invalid.
        """
        content = normalize_content(content)
        priority = validate_priority(priority)

        item_id = self._id_factory()
        while any(existing.id == item_id for existing in self._items):
            logger.warning(f"Todo id collision on {item_id}, drawing a new id")
            item_id = self._id_factory()

        now = self._clock()
        item = TodoItem(
            id=item_id,
            content=content,
            status=self._status_machine.initial_state,
            priority=priority,
            created_at=now,
            updated_at=now,
        )
        self._items.append(item)
        self._bump()
        return item

    def update(self, item_id: str, content=_UNSET, priority=_UNSET) -> TodoItem:
        """Change content and/or priority of an item.

        Omitted arguments leave the field unchanged; ``priority=None`` clears it.

        Raises:
            NotFoundError: unknown id.
            ValidationError: nothing to update, blank content or invalid priority.
        """
        if content is _UNSET and priority is _UNSET:
            raise ValidationError("Update requires content or priority")

        index = self._index_of(item_id)
        changes = {}
        if content is not _UNSET:
            changes["content"] = normalize_content(content)
        if priority is not _UNSET:
            changes["priority"] = validate_priority(priority)

        item = self._items[index].with_changes(self._clock(), **changes)
        self._items[index] = item
        self._bump()
        return item

    def transition(self, item_id: str, new_status: TodoStatus) -> TodoItem:
        """Move an item to ``new_status``.

        Raises:
            NotFoundError: unknown id.
            InvalidTransitionError: move not permitted by the status machine.
        """
        index = self._index_of(item_id)
        current = self._items[index]
        new_status = TodoStatus(new_status)
        self._status_machine.check_transition(current.status, new_status, item_id=item_id)

        item = current.with_changes(self._clock(), status=new_status)
        self._items[index] = item
        self._bump()
        return item

    def remove(self, item_id: str) -> TodoItem:
        """Delete an item and return it.

        Raises:
            NotFoundError: unknown id.
        """
        index = self._index_of(item_id)
        item = self._items.pop(index)
        self._bump()
        return item

    def clear(self) -> int:
        """Delete every item. Counts as one mutation even when the list is empty."""
        count = len(self._items)
        self._items = []
        self._bump()
        return count
