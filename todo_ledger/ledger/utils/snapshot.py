"""Snapshot store for durable todo list persistence."""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pydantic as pd

from todo_ledger.ledger.constants import CORRUPT_SUFFIX, TEMP_PREFIX, TEMP_SUFFIX
from todo_ledger.ledger.contracts import TodoListSnapshot
from todo_ledger.errors import CorruptStateError, PersistenceError

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Manages the on-disk snapshot of one todo list.

    Provides atomic write operations so the snapshot on disk is always a
    complete, parseable record of some committed version. Uses the temp file
    + rename pattern: the new snapshot is written and synced next to the old
    one, then renamed over it. A crash before the rename leaves the previous
    snapshot untouched.
    """

    def __init__(self, path: Path, fsync: bool = True):
        """Initialize snapshot store.

        Args:
            path: Location of the snapshot JSON file
            fsync: Whether to sync file contents to disk before the rename
        """
        self.path = Path(path)
        self.fsync = fsync

    @property
    def directory(self) -> Path:
        return self.path.parent

    def exists(self) -> bool:
        """Check if a snapshot has been written.

        Returns:
            True if the snapshot file exists, False otherwise
        """
        return self.path.exists()

    def save(self, snapshot: TodoListSnapshot) -> Path:
        """Write ``snapshot`` atomically.

        Args:
            snapshot: TodoListSnapshot to persist

        Returns:
            Path to the saved snapshot file

        Raises:
            PersistenceError: Any I/O failure. The previous snapshot is left intact.
        """
        temp_path = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.directory,
                prefix=TEMP_PREFIX,
                suffix=TEMP_SUFFIX,
                delete=False,
            ) as f:
                temp_path = Path(f.name)
                f.write(snapshot.model_dump_json(indent=2))
                f.flush()
                if self.fsync:
                    os.fsync(f.fileno())
            os.replace(temp_path, self.path)
            temp_path = None
        except OSError as e:
            logger.error(f"Failed to write todo snapshot {self.path}: {e}")
            raise PersistenceError(
                f"Failed to save todos to {self.path}: {e}", path=self.path
            ) from e
        finally:
            if temp_path is not None:
                self._discard(temp_path)

        if self.fsync:
            self._sync_directory()

        logger.debug(f"Saved todo snapshot v{snapshot.version} to {self.path}")
        return self.path

    def load(self) -> TodoListSnapshot:
        """Load the snapshot, or an empty list at version 0 if none exists.

        Stale temp files from an interrupted save are removed first.

        Raises:
            CorruptStateError: The file exists but is not a valid snapshot
            PersistenceError: The file exists but cannot be read
        """
        self.cleanup_temp_files()

        if not self.path.exists():
            logger.debug(f"No todo snapshot at {self.path}, starting empty")
            return TodoListSnapshot()

        try:
            with open(self.path, "rb") as f:
                raw = f.read()
        except OSError as e:
            raise PersistenceError(
                f"Failed to read todos file {self.path}: {e}", path=self.path
            ) from e

        try:
            data = json.loads(raw.decode("utf-8"))
            snapshot = TodoListSnapshot.model_validate(data)
        except (json.JSONDecodeError, UnicodeDecodeError, pd.ValidationError) as e:
            logger.error(f"Todo snapshot {self.path} is corrupt: {e}")
            raise CorruptStateError(
                f"Failed to parse todos file {self.path}: {e}", path=self.path
            ) from e

        logger.debug(
            f"Loaded todo snapshot v{snapshot.version} ({len(snapshot.items)} items) from {self.path}"
        )
        return snapshot

    def cleanup_temp_files(self) -> int:
        """Remove temp files left behind by a save that never reached the rename.

        Returns:
            Number of files removed
        """
        if not self.directory.is_dir():
            return 0
        removed = 0
        for stale in self.directory.glob(f"{TEMP_PREFIX}*{TEMP_SUFFIX}"):
            logger.warning(f"Removing stale todo snapshot temp file {stale}")
            self._discard(stale)
            removed += 1
        return removed

    def quarantine(self) -> Path:
        """Move a corrupt snapshot aside so a fresh list can start.

        Returns:
            Path the corrupt snapshot was moved to

        Raises:
            PersistenceError: The snapshot could not be moved
        """
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
        target = self.path.with_name(f"{self.path.name}{CORRUPT_SUFFIX}-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            raise PersistenceError(
                f"Failed to quarantine todos file {self.path}: {e}", path=self.path
            ) from e
        logger.warning(f"Quarantined corrupt todo snapshot to {target}")
        return target

    def _sync_directory(self) -> None:
        # Directory fsync makes the rename itself durable; not supported on Windows.
        if os.name != "posix":
            return
        # The rename has already happened, so a failure here is logged, not raised.
        try:
            fd = os.open(self.directory, os.O_RDONLY)
            try:
                os.fsync(fd)
            finally:
                os.close(fd)
        except OSError as e:
            logger.warning(f"Could not sync snapshot directory {self.directory}: {e}")

    @staticmethod
    def _discard(path: Path) -> None:
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {path}: {e}")
