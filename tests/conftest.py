"""Shared pytest fixtures for todo-ledger tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from todo_ledger.ledger.list_store import TodoListStore
from todo_ledger.ledger.session import TodoSession
from todo_ledger.ledger.utils.config import LedgerConfig


class FakeClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self, start: datetime | None = None):
        self.now = start or datetime(2026, 1, 1, 9, 0, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + timedelta(seconds=1)
        return current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> TodoListStore:
    return TodoListStore(clock=clock)


@pytest.fixture
def project_root(tmp_path: Path) -> Path:
    return tmp_path


@pytest.fixture
def config() -> LedgerConfig:
    return LedgerConfig()


@pytest.fixture
def session(project_root: Path, config: LedgerConfig):
    session = TodoSession.open(project_root, config=config)
    yield session
    session.close()
