"""Per-project todo session.

A TodoSession is the context object that owns one todo list for one project:
its store, guard, snapshot file and command handler. Nothing is process-wide;
two sessions on two project roots are fully independent.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Union

from todo_ledger.fsm.status_fsm import StatusMachine
from todo_ledger.ledger.commands import Command, TodoCommandHandler, command_action
from todo_ledger.ledger.contracts import (
    CommandResponse,
    CommandResult,
    ErrorPayload,
    TodoListSnapshot,
)
from todo_ledger.errors import CorruptStateError, SessionClosedError
from todo_ledger.ledger.events import TodoEventStream
from todo_ledger.ledger.guard import ConcurrencyGuard
from todo_ledger.ledger.list_store import TodoListStore
from todo_ledger.ledger.utils.config import LedgerConfig
from todo_ledger.ledger.utils.snapshot import SnapshotStore

logger = logging.getLogger(__name__)


def load_initial_snapshot(snapshot_store: SnapshotStore, config: LedgerConfig) -> TodoListSnapshot:
    """Load the starting snapshot, applying the configured corrupt-snapshot policy.

    Raises:
        CorruptStateError: snapshot unparsable and policy is "raise".
    """
    try:
        return snapshot_store.load()
    except CorruptStateError:
        if config.corrupt_policy != "quarantine":
            raise
        moved_to = snapshot_store.quarantine()
        logger.warning(f"Starting with an empty todo list; corrupt snapshot kept at {moved_to}")
        return TodoListSnapshot()


class TodoSession:
    """Owns the todo list of one project for the lifetime of that project context.

    Example:
        >>> with TodoSession.open(project_root) as session:
        ...     result = session.execute({"action": "add", "content": "write tests"})
        ...     session.execute({"action": "list"}).version
        1
    """

    def __init__(
        self,
        handler: TodoCommandHandler,
        config: LedgerConfig,
        project_root: Optional[Path] = None,
    ):
        self._handler = handler
        self._config = config
        self._project_root = project_root
        self._closed = False

    @classmethod
    def open(
        cls,
        project_root: Union[str, Path],
        config: Optional[LedgerConfig] = None,
        events: Optional[TodoEventStream] = None,
    ) -> "TodoSession":
        """Load (or start) the todo list stored under ``project_root``.

        Args:
            project_root: Project directory; the snapshot lives beneath it.
            config: Ledger settings. Defaults to ``LedgerConfig.from_env()``.
            events: Stream receiving progress events.

        Raises:
            CorruptStateError: The snapshot is unparsable and policy is "raise".
            PersistenceError: The snapshot exists but cannot be read.
        """
        config = config if config is not None else LedgerConfig.from_env()
        project_root = Path(project_root)
        snapshot_store = SnapshotStore(config.snapshot_path(project_root), fsync=config.fsync)
        snapshot = load_initial_snapshot(snapshot_store, config)

        store = TodoListStore(snapshot, status_machine=StatusMachine.for_policy(config.allow_reopen))
        guard = ConcurrencyGuard(store, snapshot_store)
        logger.info(
            f"Opened todo session at {snapshot_store.path} "
            f"(v{snapshot.version}, {len(snapshot.items)} items)"
        )
        return cls(TodoCommandHandler(guard, events), config, project_root)

    @classmethod
    def in_memory(
        cls, config: Optional[LedgerConfig] = None, events: Optional[TodoEventStream] = None
    ) -> "TodoSession":
        """Session with no snapshot file, for callers that do not need durability."""
        config = config if config is not None else LedgerConfig()
        store = TodoListStore(status_machine=StatusMachine.for_policy(config.allow_reopen))
        return cls(TodoCommandHandler(ConcurrencyGuard(store), events), config)

    @property
    def config(self) -> LedgerConfig:
        return self._config

    @property
    def project_root(self) -> Optional[Path]:
        return self._project_root

    @property
    def handler(self) -> TodoCommandHandler:
        return self._handler

    @property
    def events(self) -> TodoEventStream:
        return self._handler.events

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def version(self) -> int:
        return self._handler.guard.version

    def _check_open(self) -> None:
        if self._closed:
            raise SessionClosedError()

    def execute(self, command: Union[Command, Dict[str, Any]]) -> CommandResult:
        """Run a command; see TodoCommandHandler.execute."""
        self._check_open()
        return self._handler.execute(command)

    async def aexecute(self, command: Union[Command, Dict[str, Any]]) -> CommandResult:
        self._check_open()
        return await self._handler.aexecute(command)

    def dispatch(self, payload: Union[Command, Dict[str, Any]]) -> CommandResponse:
        """Run a command and return a CommandResponse; see TodoCommandHandler.dispatch."""
        if self._closed:
            return CommandResponse(
                ok=False,
                action=command_action(payload),
                error=ErrorPayload.from_error(SessionClosedError()),
            )
        return self._handler.dispatch(payload)

    async def adispatch(self, payload: Union[Command, Dict[str, Any]]) -> CommandResponse:
        if self._closed:
            return self.dispatch(payload)
        return await self._handler.adispatch(payload)

    def close(self) -> None:
        """Flush and release the list. Waits for any in-flight mutation.

        Every commit is already durable, so flushing only writes a snapshot
        when the committed state has never reached disk.
        """
        if self._closed:
            return
        guard = self._handler.guard
        with guard.exclusive() as snapshot:
            snapshot_store = guard.snapshot_store
            if snapshot_store is not None and snapshot.version > 0 and not snapshot_store.exists():
                snapshot_store.save(snapshot)
            self._closed = True
        logger.info(f"Closed todo session at v{snapshot.version}")

    def __enter__(self) -> "TodoSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
