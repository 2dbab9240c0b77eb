"""Logging configuration for todo_ledger with package filtering."""

from __future__ import annotations

import logging
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_NAME = "todo_ledger"


class PackageFilter(logging.Filter):
    """Filter to only allow logs from specified packages."""

    def __init__(self, packages: List[str]) -> None:
        super().__init__()
        self.packages = packages

    def filter(self, record: logging.LogRecord) -> bool:
        """Filter log records to only allow specified packages.

        Args:
            record: LogRecord to filter

        Returns:
            True if record should be logged, False otherwise
        """
        return any(record.name.startswith(pkg) for pkg in self.packages)


def configure_logging(verbose: bool = False, console: Optional[Console] = None) -> RichHandler:
    """Install a RichHandler on the root logger.

    Replaces any handlers already on the root logger, so calling it twice
    does not duplicate output.

    Args:
        verbose: Enable DEBUG level logging
        console: Console to log to. Defaults to stderr so command output stays clean.

    Returns:
        The installed handler
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=verbose,
        rich_tracebacks=True,
        log_time_format="%H:%M:%S",
    )
    handler.setLevel(log_level)
    handler.addFilter(PackageFilter([PACKAGE_NAME]))

    logging.basicConfig(
        level=log_level, format="%(message)s", handlers=[handler], force=True
    )
    return handler
