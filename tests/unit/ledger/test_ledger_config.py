"""Tests for LedgerConfig."""

from pathlib import Path

import pytest

from todo_ledger.errors import ValidationError
from todo_ledger.ledger.utils.config import LedgerConfig


class TestLedgerConfig:
    def test_defaults(self):
        config = LedgerConfig()
        assert config.ledger_dir == ".todo-ledger"
        assert config.snapshot_file == "todos.json"
        assert config.allow_reopen is False
        assert config.fsync is True
        assert config.corrupt_policy == "raise"

    def test_from_env_overrides(self):
        config = LedgerConfig.from_env(
            {
                "TODO_LEDGER_DIR": ".plans",
                "TODO_LEDGER_SNAPSHOT": "plan.json",
                "TODO_LEDGER_ALLOW_REOPEN": "true",
                "TODO_LEDGER_FSYNC": "0",
                "TODO_LEDGER_CORRUPT_POLICY": "Quarantine",
            }
        )
        assert config == LedgerConfig(
            ledger_dir=".plans",
            snapshot_file="plan.json",
            allow_reopen=True,
            fsync=False,
            corrupt_policy="quarantine",
        )

    def test_from_env_empty_mapping_gives_defaults(self):
        assert LedgerConfig.from_env({}) == LedgerConfig()

    def test_from_env_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("TODO_LEDGER_ALLOW_REOPEN", "yes")
        assert LedgerConfig.from_env().allow_reopen is True

    @pytest.mark.parametrize("value", ["false", "no", "off", ""])
    def test_flag_falsy_values(self, value):
        assert LedgerConfig.from_env({"TODO_LEDGER_ALLOW_REOPEN": value}).allow_reopen is False

    def test_invalid_corrupt_policy(self):
        with pytest.raises(ValidationError) as exc_info:
            LedgerConfig(corrupt_policy="ignore")  # type: ignore[arg-type]
        assert exc_info.value.field == "corrupt_policy"

    def test_with_overrides(self):
        config = LedgerConfig().with_overrides(fsync=False)
        assert config.fsync is False
        assert config.ledger_dir == ".todo-ledger"

    def test_snapshot_path(self, tmp_path: Path):
        config = LedgerConfig(ledger_dir="state")
        assert config.snapshot_path(tmp_path) == tmp_path / "state" / "todos.json"
