"""Pytest configuration and fixtures."""

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from moneymate.models import Category, Frequency, RecurringTemplate
from moneymate.store import MemoryRowStore

TEST_USER_ID = "user-test-001"


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from real config files and credentials."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg_config"))
    for var in ("MONEYMATE_URL", "MONEYMATE_API_KEY", "MONEYMATE_USER_ID"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def user_id() -> str:
    """Return the user id used by service tests."""
    return TEST_USER_ID


@pytest.fixture
def store() -> MemoryRowStore:
    """Return an empty in-memory row store."""
    return MemoryRowStore()


@pytest.fixture
def make_template() -> Callable[..., RecurringTemplate]:
    """Return a factory for recurring templates with sensible defaults."""

    def _make(**overrides: Any) -> RecurringTemplate:
        fields: dict[str, Any] = {
            "id": "tpl-1",
            "user_id": TEST_USER_ID,
            "name": "Rent",
            "amount": Decimal("1500"),
            "category": Category.NEED,
            "frequency": Frequency.MONTHLY,
            "start_date": date(2024, 1, 1),
            "description": "Monthly rent",
        }
        fields.update(overrides)
        return RecurringTemplate(**fields)

    return _make
