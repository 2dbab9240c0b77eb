"""Tests for CLI RichHandler colored logging.

Tests verify that setup_logging() configures a RichHandler on the root
logger, honors the --verbose flag, and only lets todo_ledger records through.
"""

import logging
from io import StringIO

import pytest
from rich.console import Console
from rich.logging import RichHandler

from todo_ledger.ledger.cli import setup_logging
from todo_ledger.ledger.logging_utils import PackageFilter, configure_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


def rich_handlers():
    return [h for h in logging.getLogger().handlers if isinstance(h, RichHandler)]


class TestSetupLoggingWithRichHandler:
    """Test setup_logging() function with RichHandler configuration."""

    def test_setup_logging_info_level_by_default(self):
        setup_logging(verbose=False)

        assert logging.getLogger().level == logging.INFO
        assert len(rich_handlers()) == 1

    def test_verbose_flag_enables_debug_logging(self):
        setup_logging(verbose=True)

        assert logging.getLogger().level == logging.DEBUG
        assert rich_handlers()[0].level == logging.DEBUG

    def test_multiple_setup_logging_calls_safe(self):
        setup_logging(verbose=False)
        setup_logging(verbose=True)

        assert logging.getLogger().level == logging.DEBUG
        assert len(rich_handlers()) == 1


class TestPackageFiltering:
    def test_only_package_records_are_emitted(self):
        buffer = StringIO()
        configure_logging(console=Console(file=buffer, width=200))

        logging.getLogger("todo_ledger.ledger.session").info("ledger message")
        logging.getLogger("urllib3").info("library noise")

        output = buffer.getvalue()
        assert "ledger message" in output
        assert "library noise" not in output

    def test_debug_hidden_unless_verbose(self):
        buffer = StringIO()
        configure_logging(verbose=False, console=Console(file=buffer, width=200))

        logging.getLogger("todo_ledger.ledger.guard").debug("detail")

        assert "detail" not in buffer.getvalue()

    def test_package_filter(self):
        package_filter = PackageFilter(["todo_ledger"])
        record = logging.LogRecord("todo_ledger.fsm", logging.INFO, __file__, 1, "m", None, None)
        other = logging.LogRecord("asyncio", logging.INFO, __file__, 1, "m", None, None)

        assert package_filter.filter(record)
        assert not package_filter.filter(other)
