"""Spending analytics over recorded transactions."""

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum

from moneymate.models import Category, TransactionInstance

ZERO = Decimal("0")


class Timeframe(str, Enum):
    """Look-back windows offered by the insights view."""

    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    ALL = "all"


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _shift_months(day: date, months: int) -> date:
    """Move a date by whole months, clamping to the end of shorter months."""
    total = day.year * 12 + day.month - 1 + months
    year, month = divmod(total, 12)
    month += 1
    next_month = date(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_month - timedelta(days=1)).day
    return date(year, month, min(day.day, last_day))


def timeframe_start(timeframe: Timeframe | str, now: datetime) -> datetime | None:
    """Return the earliest timestamp included in a timeframe.

    Returns None for the unbounded timeframe.
    """
    timeframe = Timeframe(timeframe)
    now = _aware(now)
    if timeframe is Timeframe.WEEK:
        return now - timedelta(days=7)
    if timeframe is Timeframe.ALL:
        return None

    months = 1 if timeframe is Timeframe.MONTH else 12
    start_day = _shift_months(now.date(), -months)
    return datetime.combine(start_day, datetime.min.time(), tzinfo=now.tzinfo)


def filter_by_timeframe(
    transactions: Iterable[TransactionInstance],
    timeframe: Timeframe | str,
    now: datetime | None = None,
) -> list[TransactionInstance]:
    """Keep transactions created within the timeframe.

    Transactions without a creation time only appear in the unbounded
    timeframe.
    """
    start = timeframe_start(timeframe, now or datetime.now(timezone.utc))
    if start is None:
        return list(transactions)
    return [
        tx for tx in transactions
        if tx.created_at is not None and _aware(tx.created_at) >= start
    ]


def filter_transactions(
    transactions: Iterable[TransactionInstance],
    category: Category | str | None = None,
    query: str | None = None,
) -> list[TransactionInstance]:
    """Filter by category and a case-insensitive search query.

    The query matches the description or the amount. A category of
    None or "all" keeps every category.
    """
    result = list(transactions)
    if category is not None and category != "all":
        wanted = Category(category)
        result = [tx for tx in result if tx.category is wanted]

    if query:
        needle = query.lower()
        result = [
            tx for tx in result
            if needle in tx.description.lower() or needle in str(tx.amount)
        ]
    return result


def net_balance(transactions: Iterable[TransactionInstance]) -> Decimal:
    """Income minus expenses."""
    return sum((tx.signed_amount for tx in transactions), ZERO)


def category_percentage(amount: Decimal, total: Decimal) -> Decimal:
    """Share of a total as a percentage, 0 when the total is 0."""
    if total == 0:
        return ZERO
    return amount / total * 100


@dataclass(frozen=True)
class SpendingBreakdown:
    """Totals per category."""

    need: Decimal = ZERO
    want: Decimal = ZERO
    goal: Decimal = ZERO
    income: Decimal = ZERO

    @property
    def total_expenses(self) -> Decimal:
        """Needs, wants and goal contributions together."""
        return self.need + self.want + self.goal

    @property
    def savings_rate(self) -> Decimal:
        """Percentage of income left after expenses, 0 without income."""
        if self.income == 0:
            return ZERO
        return (self.income - self.total_expenses) / self.income * 100

    def amount_for(self, category: Category | str) -> Decimal:
        """Total for one category."""
        return getattr(self, Category(category).value)  # type: ignore[no-any-return]

    def percentage_of_expenses(self, category: Category | str) -> Decimal:
        """Share of total expenses spent in one category."""
        return category_percentage(self.amount_for(category), self.total_expenses)


def spending_breakdown(transactions: Iterable[TransactionInstance]) -> SpendingBreakdown:
    """Sum transaction amounts per category."""
    totals = {category: ZERO for category in Category}
    for tx in transactions:
        totals[tx.category] += tx.amount
    return SpendingBreakdown(
        need=totals[Category.NEED],
        want=totals[Category.WANT],
        goal=totals[Category.GOAL],
        income=totals[Category.INCOME],
    )


@dataclass(frozen=True)
class MonthlySummary:
    """Income and expenses for one calendar month."""

    month_key: str  # YYYY-MM
    income: Decimal
    expenses: Decimal

    @property
    def savings(self) -> Decimal:
        """Income left after expenses (may be negative)."""
        return self.income - self.expenses

    @property
    def label(self) -> str:
        """Short display label such as 'Jan 2024'."""
        year, month = self.month_key.split("-")
        return date(int(year), int(month), 1).strftime("%b %Y")


def monthly_summaries(
    transactions: Iterable[TransactionInstance], limit: int = 6
) -> list[MonthlySummary]:
    """Group transactions by month and return the most recent months.

    Months are returned oldest first. Transactions without a creation
    time are ignored.
    """
    income: dict[str, Decimal] = {}
    expenses: dict[str, Decimal] = {}
    for tx in transactions:
        if tx.created_at is None:
            continue
        key = _aware(tx.created_at).strftime("%Y-%m")
        income.setdefault(key, ZERO)
        expenses.setdefault(key, ZERO)
        if tx.is_income:
            income[key] += tx.amount
        else:
            expenses[key] += tx.amount

    summaries = [
        MonthlySummary(month_key=key, income=income[key], expenses=expenses[key])
        for key in sorted(income)
    ]
    return summaries[-limit:] if limit > 0 else summaries


def max_monthly_value(summaries: Sequence[MonthlySummary]) -> Decimal:
    """Largest income or expense figure, used to scale charts."""
    return max(
        (max(summary.income, summary.expenses) for summary in summaries),
        default=ZERO,
    )
