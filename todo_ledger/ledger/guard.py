"""Concurrency guard for todo list mutations.

Locking Strategy:
    - One threading.Lock per list serializes every mutation end to end:
      expected-version check, apply, durable flush, publication
    - Reads never take the mutation lock; they return the last published
      TodoListSnapshot, which is immutable
    - Publication is a single reference assignment made only after the
      flush succeeded, so readers see the state before or after a mutation
      and never anything in between
    - A failure anywhere in apply or flush restores the store from the
      pre-mutation snapshot before the error propagates
"""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional, Tuple, TypeVar

from todo_ledger.fsm.todo import TodoItem
from todo_ledger.fsm.todo_status import TodoStatus
from todo_ledger.ledger.contracts import TodoListSnapshot
from todo_ledger.errors import ConflictError, NotFoundError
from todo_ledger.ledger.list_store import TodoListStore, order_items
from todo_ledger.ledger.utils.snapshot import SnapshotStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

Operation = Callable[[TodoListStore], T]


class ConcurrencyGuard:
    """Serializes mutations of one TodoListStore and publishes committed snapshots.

    Example:
        >>> guard = ConcurrencyGuard(TodoListStore())
        >>> item, snapshot = guard.mutate(lambda store: store.add("write tests"))
        >>> snapshot.version
        1
        >>> guard.list()[0][0].content
        'write tests'
    """

    def __init__(self, store: TodoListStore, snapshot_store: Optional[SnapshotStore] = None):
        """Initialize the guard.

        Args:
            store: The list store this guard exclusively owns.
            snapshot_store: Durable target flushed on every commit. None keeps the list in memory only.
        """
        self._store = store
        self._snapshot_store = snapshot_store
        self._mutation_lock = threading.Lock()
        self._published: TodoListSnapshot = store.snapshot()

    @property
    def snapshot_store(self) -> Optional[SnapshotStore]:
        return self._snapshot_store

    @property
    def mutation_lock(self) -> threading.Lock:
        """Get the mutation lock (read-only)."""
        return self._mutation_lock

    @property
    def version(self) -> int:
        """Version of the last committed snapshot."""
        return self._published.version

    def read(self) -> TodoListSnapshot:
        """Return the last committed snapshot without blocking."""
        return self._published

    def list(self, status: Optional[TodoStatus] = None) -> Tuple[List[TodoItem], int]:
        """Return ordered items of the committed snapshot and its version."""
        snapshot = self._published
        items = snapshot.items
        if status is not None:
            items = tuple(item for item in items if item.status == status)
        return order_items(items), snapshot.version

    def get(self, item_id: str) -> TodoItem:
        item = self._published.find(item_id)
        if item is None:
            raise NotFoundError(item_id)
        return item

    def mutate(
        self, operation: Operation, expected_version: Optional[int] = None
    ) -> Tuple[T, TodoListSnapshot]:
        """Apply ``operation`` to the store as one committed mutation.

        Args:
            operation: Callable receiving the store; must perform exactly one store mutation.
            expected_version: If given, the mutation fails unless it equals the current version.

        Returns:
            The operation's return value and the committed snapshot.

        Raises:
            ConflictError: expected_version is stale; nothing changed.
            TodoLedgerError: whatever the operation or the flush raised; nothing changed.
        """
        with self._mutation_lock:
            current = self._store.version
            if expected_version is not None and expected_version != current:
                logger.debug(f"Rejecting mutation: expected v{expected_version}, at v{current}")
                raise ConflictError(expected=expected_version, actual=current)

            before = self._store.snapshot()
            try:
                result = operation(self._store)
                after = self._store.snapshot()
                if after.version != before.version + 1:
                    raise RuntimeError(
                        f"Mutation moved version from {before.version} to {after.version}"
                    )
                if self._snapshot_store is not None:
                    self._snapshot_store.save(after)
            except BaseException:
                self._store.restore(before)
                logger.debug(f"Rolled back todo list to v{before.version}")
                raise

            self._published = after
            return result, after

    @contextmanager
    def exclusive(self) -> Iterator[TodoListSnapshot]:
        """Hold the mutation lock, e.g. while a session shuts down.

        Yields:
            The committed snapshot, stable for the duration of the block.
        """
        with self._mutation_lock:
            yield self._published


class AsyncConcurrencyGuard:
    """Cooperative front for a ConcurrencyGuard.

    Coroutines queue on an asyncio.Lock, where cancellation has no effect on
    the list. Once a coroutine holds the lock its mutation runs in a worker
    thread and is shielded: cancelling the caller after that point does not
    interrupt the commit or rollback.
    """

    def __init__(self, guard: ConcurrencyGuard):
        self._guard = guard
        self._lock = asyncio.Lock()

    @property
    def guard(self) -> ConcurrencyGuard:
        return self._guard

    async def mutate(
        self, operation: Operation, expected_version: Optional[int] = None
    ) -> Tuple[T, TodoListSnapshot]:
        async with self._lock:
            future = asyncio.ensure_future(
                asyncio.to_thread(self._guard.mutate, operation, expected_version)
            )
            try:
                return await asyncio.shield(future)
            except asyncio.CancelledError:
                # The worker keeps running; nobody awaits it any more.
                future.add_done_callback(_log_detached_outcome)
                raise


def _log_detached_outcome(future: "asyncio.Future") -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.error(f"Todo mutation failed after its caller was cancelled: {error!r}")
        return
    _, snapshot = future.result()
    logger.info(f"Todo mutation committed at v{snapshot.version} after its caller was cancelled")
