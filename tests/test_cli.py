"""Tests for the command-line interface."""

import json
from collections.abc import Iterator
from datetime import date, timedelta
from decimal import Decimal
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from moneymate.cli import format_money, main
from moneymate.models import RECURRING_TABLE, TRANSACTIONS_TABLE
from moneymate.store import MemoryRowStore

BACKEND_ARGS = ["--url", "https://example.test/rest/v1", "--api-key", "key", "--user-id", "u1"]


@pytest.fixture
def memory_backend() -> Iterator[MemoryRowStore]:
    """Route the CLI's backend client to an in-memory store."""
    store = MemoryRowStore()
    with patch("moneymate.cli.RestRowStore", return_value=store):
        yield store


class TestFormatMoney:
    """Tests for format_money."""

    def test_formats(self) -> None:
        """Amounts get a dollar sign, separators and two decimals."""
        assert format_money(Decimal("1500")) == "$1,500.00"
        assert format_money(Decimal("-12.5")) == "-$12.50"


class TestMain:
    """Tests for main."""

    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Running without a command shows usage and fails."""
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_requires_user_id(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Data commands need an identity."""
        assert main(["due"]) == 1
        assert "user id required" in capsys.readouterr().err

    def test_requires_backend(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Data commands need a backend URL and key."""
        assert main(["--user-id", "u1", "due"]) == 1
        assert "Backend URL and API key required" in capsys.readouterr().err

    def test_show_config(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """The configuration is displayed with the key masked."""
        config_file = tmp_path / "config.json"
        config_file.write_text(json.dumps({
            "user_id": "u1",
            "backend": {"url": "https://example.test", "api_key": "abcdefghijklmnop"},
        }))

        assert main(["show-config"]) == 0

        out = capsys.readouterr().out
        assert "u1" in out
        assert "abcdefgh...mnop" in out
        assert "abcdefghijklmnop" not in out

    def test_config_file_supplies_backend(
        self, tmp_path: Path, memory_backend: MemoryRowStore
    ) -> None:
        """Settings are read from config.json in the working directory."""
        (tmp_path / "config.json").write_text(json.dumps({
            "user_id": "u1",
            "backend": {"url": "https://example.test", "api_key": "k"},
        }))

        assert main(["add", "12.50", "want", "-d", "Lunch"]) == 0

        rows = memory_backend.fetch_all(TRANSACTIONS_TABLE, "u1")
        assert rows[0]["description"] == "Lunch"
        assert rows[0]["type"] == "expense"

    def test_recurring_add_and_process(
        self, memory_backend: MemoryRowStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """A template starting today is listed as due and then processed."""
        today = date.today().isoformat()
        assert main(BACKEND_ARGS + [
            "recurring", "add", "Rent", "1500", "need", "monthly", "--start", today,
        ]) == 0

        assert main(BACKEND_ARGS + ["due"]) == 0
        assert "1 recurring template(s) due today" in capsys.readouterr().out

        assert main(BACKEND_ARGS + ["process-due", "--dry-run"]) == 0
        assert memory_backend.fetch_all(TRANSACTIONS_TABLE, "u1") == []

        assert main(BACKEND_ARGS + ["process-due"]) == 0
        assert "Created: 1" in capsys.readouterr().err
        assert len(memory_backend.fetch_all(TRANSACTIONS_TABLE, "u1")) == 1

        template = memory_backend.fetch_all(RECURRING_TABLE, "u1")[0]
        assert template["last_processed"] is not None

    def test_recurring_pause(
        self, memory_backend: MemoryRowStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Paused templates are no longer due."""
        start = (date.today() - timedelta(days=3)).isoformat()
        main(BACKEND_ARGS + ["recurring", "add", "Gym", "40", "want", "weekly", "--start", start])
        template_id = memory_backend.fetch_all(RECURRING_TABLE, "u1")[0]["id"]
        main(BACKEND_ARGS + ["due"])
        assert "1 recurring template(s) due today" in capsys.readouterr().out

        assert main(BACKEND_ARGS + ["recurring", "pause", template_id]) == 0
        main(BACKEND_ARGS + ["due"])

        assert "0 recurring template(s) due today" in capsys.readouterr().out
        assert memory_backend.fetch_all(RECURRING_TABLE, "u1")[0]["is_active"] is False

    def test_invalid_amount_reported(
        self, memory_backend: MemoryRowStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Validation errors become a non-zero exit with a message."""
        assert main(BACKEND_ARGS + ["add", "abc", "want"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_goals_flow(
        self, memory_backend: MemoryRowStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Goals can be created, funded and listed."""
        assert main(BACKEND_ARGS + ["goals", "add", "Car", "1000"]) == 0
        goal_id = memory_backend.fetch_all("goals", "u1")[0]["id"]

        assert main(BACKEND_ARGS + ["goals", "contribute", goal_id, "250"]) == 0
        assert main(BACKEND_ARGS + ["goals", "list"]) == 0

        out = capsys.readouterr().out
        assert "$250.00 / $1,000.00" in out
        assert "25%" in out

    def test_transactions_list_and_insights(
        self, memory_backend: MemoryRowStore, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Listing shows the balance and insights show the breakdown."""
        main(BACKEND_ARGS + ["add", "3000", "income"])
        main(BACKEND_ARGS + ["add", "1000", "need", "-d", "Rent"])
        capsys.readouterr()

        assert main(BACKEND_ARGS + ["transactions", "list", "--search", "rent"]) == 0
        out = capsys.readouterr().out
        assert "1 of 2 transaction(s), balance $2,000.00" in out

        assert main(BACKEND_ARGS + ["insights", "--timeframe", "all"]) == 0
        out = capsys.readouterr().out
        assert "Income:   $3,000.00" in out
        assert "Savings rate: 66.7%" in out
        assert "|######\n" in out

    def test_store_error_reported(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Backend failures become a non-zero exit."""
        from moneymate.errors import RowStoreError

        failing = MagicMock()
        failing.fetch_all.side_effect = RowStoreError("goals", "fetch", "timeout")
        with patch("moneymate.cli.RestRowStore", return_value=failing):
            assert main(BACKEND_ARGS + ["goals", "list"]) == 1

        assert "fetch on goals failed: timeout" in capsys.readouterr().err
