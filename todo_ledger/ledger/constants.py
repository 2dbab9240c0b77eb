"""Constants for .todo-ledger directory structure."""

from pathlib import Path

LEDGER_DIR = ".todo-ledger"
SNAPSHOT_FILE = "todos.json"
TEMP_PREFIX = ".todos."
TEMP_SUFFIX = ".tmp"
CORRUPT_SUFFIX = ".corrupt"


def get_ledger_dir(project_root: Path, dir_name: str = LEDGER_DIR) -> Path:
    """Get the .todo-ledger directory path."""
    return Path(project_root) / dir_name


def get_snapshot_path(
    project_root: Path, dir_name: str = LEDGER_DIR, file_name: str = SNAPSHOT_FILE
) -> Path:
    """Get the snapshot file path for a project."""
    return get_ledger_dir(project_root, dir_name) / file_name
