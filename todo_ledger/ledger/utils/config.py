"""Ledger configuration.

Settings come from a dataclass with defaults. ``LedgerConfig.from_env()``
overrides them from environment variables:

    TODO_LEDGER_DIR (default: .todo-ledger):
        Directory under the project root holding the snapshot.

    TODO_LEDGER_SNAPSHOT (default: todos.json):
        Snapshot file name inside TODO_LEDGER_DIR.

    TODO_LEDGER_ALLOW_REOPEN (default: False):
        Permit moving completed items back to pending/in_progress.

    TODO_LEDGER_FSYNC (default: True):
        Sync snapshot contents to disk before the atomic rename.

    TODO_LEDGER_CORRUPT_POLICY (default: raise):
        What opening a session does with an unparsable snapshot: "raise"
        surfaces CorruptStateError, "quarantine" moves the file aside and
        starts from an empty list.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Literal, Mapping, Optional

from todo_ledger.ledger.constants import LEDGER_DIR, SNAPSHOT_FILE, get_snapshot_path
from todo_ledger.errors import ValidationError

logger = logging.getLogger(__name__)

CorruptPolicy = Literal["raise", "quarantine"]
CORRUPT_POLICIES = ("raise", "quarantine")


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes")


@dataclass(frozen=True)
class LedgerConfig:
    """Configuration for a todo ledger session."""

    ledger_dir: str = LEDGER_DIR
    snapshot_file: str = SNAPSHOT_FILE
    allow_reopen: bool = False
    fsync: bool = True
    corrupt_policy: CorruptPolicy = "raise"

    def __post_init__(self) -> None:
        if self.corrupt_policy not in CORRUPT_POLICIES:
            raise ValidationError(
                f"Unknown corrupt policy '{self.corrupt_policy}'. "
                f"Expected one of: {', '.join(CORRUPT_POLICIES)}",
                field="corrupt_policy",
            )

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "LedgerConfig":
        """Build a config from environment variables.

        Args:
            env: Mapping to read instead of ``os.environ`` (used by tests)

        Returns:
            LedgerConfig with overrides applied
        """
        env = os.environ if env is None else env
        config = cls(
            ledger_dir=env.get("TODO_LEDGER_DIR", LEDGER_DIR),
            snapshot_file=env.get("TODO_LEDGER_SNAPSHOT", SNAPSHOT_FILE),
            allow_reopen=_env_flag(env, "TODO_LEDGER_ALLOW_REOPEN", False),
            fsync=_env_flag(env, "TODO_LEDGER_FSYNC", True),
            corrupt_policy=env.get("TODO_LEDGER_CORRUPT_POLICY", "raise").lower(),  # type: ignore[arg-type]
        )
        logger.debug(f"Loaded ledger config from environment: {config}")
        return config

    def with_overrides(self, **changes) -> "LedgerConfig":
        return replace(self, **changes)

    def snapshot_path(self, project_root: Path) -> Path:
        """Resolve the snapshot file for ``project_root``."""
        return get_snapshot_path(Path(project_root), self.ledger_dir, self.snapshot_file)
