"""Data models for recurring templates, transactions and goals."""

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

from moneymate.utils import format_amount, parse_amount, parse_date, parse_timestamp

# Backend collection names
RECURRING_TABLE = "recurring_transactions"
TRANSACTIONS_TABLE = "transactions"
GOALS_TABLE = "goals"


class TransactionKind(str, Enum):
    """Direction of money flow."""

    INCOME = "income"
    EXPENSE = "expense"


class Category(str, Enum):
    """Fixed set of budgeting categories."""

    NEED = "need"
    WANT = "want"
    GOAL = "goal"
    INCOME = "income"

    @property
    def kind(self) -> TransactionKind:
        """Income category is income, everything else is an expense."""
        if self is Category.INCOME:
            return TransactionKind.INCOME
        return TransactionKind.EXPENSE

    @property
    def label(self) -> str:
        """Plural display name."""
        return {
            Category.NEED: "Needs",
            Category.WANT: "Wants",
            Category.GOAL: "Goals",
            Category.INCOME: "Income",
        }[self]


class Frequency(str, Enum):
    """How often a recurring template produces an instance."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def threshold_days(self) -> int:
        """Minimum whole days between two instances.

        Months and years are fixed 30/365 day approximations.
        """
        return {
            Frequency.DAILY: 1,
            Frequency.WEEKLY: 7,
            Frequency.MONTHLY: 30,
            Frequency.YEARLY: 365,
        }[self]

    @classmethod
    def parse(cls, value: Any) -> "Frequency | None":
        """Return the matching Frequency, or None if unrecognized.

        Stored values must match exactly; callers normalize user input first.
        """
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value)
        except ValueError:
            return None


def _require_positive(name: str, amount: Decimal) -> None:
    if amount <= 0:
        raise ValueError(f"{name} must be positive, got {amount}")


def _iso(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _row_amount(row: dict[str, Any], key: str) -> Decimal:
    value = row.get(key)
    amount = parse_amount(str(value)) if value is not None else None
    if amount is None:
        raise ValueError(f"Invalid {key}: {value!r}")
    return amount


def _row_date(row: dict[str, Any], key: str) -> date | None:
    value = row.get(key)
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    parsed = parse_date(str(value)[:10])
    if parsed is None:
        raise ValueError(f"Invalid {key}: {value!r}")
    return parsed


def _row_timestamp(row: dict[str, Any], key: str) -> datetime | None:
    value = row.get(key)
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    parsed = parse_timestamp(str(value))
    if parsed is None:
        raise ValueError(f"Invalid {key}: {value!r}")
    return parsed


@dataclass(frozen=True)
class RecurringTemplate:
    """A user's rule for periodically generating a transaction."""

    user_id: str
    name: str
    amount: Decimal
    category: Category
    frequency: Frequency | str
    start_date: date
    last_processed: date | None = None
    end_date: date | None = None
    is_active: bool = True
    description: str = ""
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate template data."""
        if self.start_date is None:
            raise ValueError("Recurring template requires a start date")
        _require_positive("amount", self.amount)
        object.__setattr__(self, "category", Category(self.category))
        # Unknown frequencies are kept verbatim so evaluation can fail closed
        frequency = Frequency.parse(self.frequency)
        if frequency is not None:
            object.__setattr__(self, "frequency", frequency)
        if self.last_processed is not None and self.last_processed < self.start_date:
            raise ValueError(
                f"last_processed {self.last_processed} is before start_date {self.start_date}"
            )

    @property
    def kind(self) -> TransactionKind:
        """Derived from the category."""
        return self.category.kind

    def with_last_processed(self, processed_on: date) -> "RecurringTemplate":
        """Return a copy marked as processed on the given day."""
        return replace(self, last_processed=processed_on)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "RecurringTemplate":
        """Build a template from a backend row."""
        start_date = _row_date(row, "start_date")
        if start_date is None:
            raise ValueError("Recurring template row has no start_date")
        return cls(
            id=row.get("id"),
            user_id=row["user_id"],
            name=row.get("name") or "",
            amount=_row_amount(row, "amount"),
            category=Category(row["category"]),
            frequency=row.get("frequency", ""),
            start_date=start_date,
            last_processed=_row_date(row, "last_processed"),
            end_date=_row_date(row, "end_date"),
            is_active=bool(row.get("is_active", True)),
            description=row.get("description") or "",
            created_at=_row_timestamp(row, "created_at"),
            updated_at=_row_timestamp(row, "updated_at"),
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a backend row (server-managed fields omitted)."""
        frequency = self.frequency.value if isinstance(self.frequency, Frequency) else self.frequency
        return {
            "user_id": self.user_id,
            "name": self.name,
            "amount": format_amount(self.amount),
            "category": self.category.value,
            "type": self.kind.value,
            "frequency": frequency,
            "start_date": _iso(self.start_date),
            "last_processed": _iso(self.last_processed),
            "end_date": _iso(self.end_date),
            "is_active": self.is_active,
            "description": self.description,
        }


@dataclass(frozen=True)
class TransactionInstance:
    """A single concrete financial event."""

    user_id: str
    amount: Decimal
    category: Category
    description: str = ""
    created_at: datetime | None = None
    id: str | None = None
    kind: TransactionKind = field(init=False)

    def __post_init__(self) -> None:
        """Validate transaction data and derive its kind."""
        _require_positive("amount", self.amount)
        category = Category(self.category)
        object.__setattr__(self, "category", category)
        object.__setattr__(self, "kind", category.kind)

    @property
    def is_income(self) -> bool:
        """Return True if this is income."""
        return self.kind is TransactionKind.INCOME

    @property
    def is_expense(self) -> bool:
        """Return True if this is an expense."""
        return self.kind is TransactionKind.EXPENSE

    @property
    def signed_amount(self) -> Decimal:
        """Amount with expenses negated."""
        return self.amount if self.is_income else -self.amount

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "TransactionInstance":
        """Build a transaction from a backend row."""
        return cls(
            id=row.get("id"),
            user_id=row["user_id"],
            amount=_row_amount(row, "amount"),
            category=Category(row["category"]),
            description=row.get("description") or "",
            created_at=_row_timestamp(row, "created_at"),
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a backend row."""
        row: dict[str, Any] = {
            "user_id": self.user_id,
            "amount": format_amount(self.amount),
            "category": self.category.value,
            "type": self.kind.value,
            "description": self.description,
        }
        if self.created_at is not None:
            row["created_at"] = self.created_at.isoformat()
        return row


@dataclass(frozen=True)
class Goal:
    """A savings target."""

    user_id: str
    name: str
    target_amount: Decimal
    current_amount: Decimal = Decimal("0")
    deadline: date | None = None
    category: str = "savings"
    id: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        """Validate goal amounts."""
        _require_positive("target_amount", self.target_amount)
        if self.current_amount < 0:
            raise ValueError(f"current_amount cannot be negative, got {self.current_amount}")

    @property
    def progress_percentage(self) -> int:
        """Progress toward the target, rounded and capped at 100."""
        ratio = self.current_amount / self.target_amount * 100
        return min(100, int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP)))

    @property
    def remaining_amount(self) -> Decimal:
        """Amount still needed, never negative."""
        return max(Decimal("0"), self.target_amount - self.current_amount)

    @property
    def is_complete(self) -> bool:
        """Return True once the target is reached."""
        return self.current_amount >= self.target_amount

    def with_contribution(self, amount: Decimal) -> "Goal":
        """Return a copy with the contribution added."""
        _require_positive("contribution", amount)
        return replace(self, current_amount=self.current_amount + amount)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "Goal":
        """Build a goal from a backend row."""
        return cls(
            id=row.get("id"),
            user_id=row["user_id"],
            name=row.get("name") or "",
            target_amount=_row_amount(row, "target_amount"),
            current_amount=_row_amount(row, "current_amount")
            if row.get("current_amount") is not None
            else Decimal("0"),
            deadline=_row_date(row, "deadline"),
            category=row.get("category") or "savings",
            created_at=_row_timestamp(row, "created_at"),
        )

    def to_row(self) -> dict[str, Any]:
        """Convert to a backend row."""
        return {
            "user_id": self.user_id,
            "name": self.name,
            "target_amount": format_amount(self.target_amount),
            "current_amount": format_amount(self.current_amount),
            "deadline": _iso(self.deadline),
            "category": self.category,
        }
