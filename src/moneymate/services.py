"""Services for recurring templates, transactions and goals.

Every service is bound to an explicit user id and a row store; nothing here
assumes a global identity.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from moneymate.errors import NotFoundError, RowStoreError, ValidationError
from moneymate.models import (
    GOALS_TABLE,
    RECURRING_TABLE,
    TRANSACTIONS_TABLE,
    Category,
    Frequency,
    Goal,
    RecurringTemplate,
    TransactionInstance,
)
from moneymate.recurrence import materialize, select_due
from moneymate.store import RowStore
from moneymate.utils import format_amount, parse_amount, parse_date

logger = logging.getLogger(__name__)


def coerce_amount(value: Decimal | int | str, name: str = "amount") -> Decimal:
    """Turn user input into a positive Decimal."""
    if isinstance(value, Decimal):
        amount: Decimal | None = value
    elif isinstance(value, int):
        amount = Decimal(value)
    else:
        amount = parse_amount(str(value))
    if amount is None:
        raise ValidationError(f"Please enter a valid {name}: {value!r}")
    if amount <= 0:
        raise ValidationError(f"{name} must be greater than zero")
    return amount


def coerce_category(value: Category | str) -> Category:
    """Turn user input into a Category."""
    try:
        return Category(value.strip().lower() if isinstance(value, str) else value)
    except ValueError:
        choices = ", ".join(c.value for c in Category)
        raise ValidationError(f"Unknown category {value!r} (expected one of: {choices})") from None


def coerce_frequency(value: Frequency | str) -> Frequency:
    """Turn user input into a Frequency."""
    frequency = Frequency.parse(value.strip().lower() if isinstance(value, str) else value)
    if frequency is None:
        choices = ", ".join(f.value for f in Frequency)
        raise ValidationError(f"Unknown frequency {value!r} (expected one of: {choices})")
    return frequency


def coerce_date(value: date | str, name: str = "date") -> date:
    """Turn user input into a date."""
    if isinstance(value, date):
        return value
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(f"Invalid {name}: {value!r}")
    return parsed


class _UserScopedService:
    """Shared plumbing for services bound to one user."""

    def __init__(self, store: RowStore, user_id: str) -> None:
        if not user_id:
            raise ValidationError("A user id is required")
        self.store = store
        self.user_id = user_id

    def _discard(self, table: str, row: dict[str, Any], reason: str) -> None:
        """Delete a row written earlier in a write that then failed."""
        logger.error("%s, removing %s row %s", reason, table, row.get("id"))
        if not row.get("id"):
            return
        try:
            self.store.delete(table, row["id"])
        except RowStoreError as cleanup_error:
            logger.error("Row %s left behind in %s: %s", row["id"], table, cleanup_error)


@dataclass
class ProcessResult:
    """Result of materializing due recurring templates."""

    materialized: list[TransactionInstance] = field(default_factory=list)
    skipped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        """Number of instances created."""
        return len(self.materialized)


class RecurringTransactionService(_UserScopedService):
    """Manage recurring templates and materialize the ones that are due."""

    UPDATABLE_FIELDS = frozenset(
        {"name", "amount", "category", "frequency", "start_date", "end_date", "description"}
    )

    def list_all(self) -> list[RecurringTemplate]:
        """Return the user's templates, newest first.

        Rows that cannot be read are logged and left out.
        """
        templates = []
        for row in self.store.fetch_all(RECURRING_TABLE, self.user_id):
            try:
                templates.append(RecurringTemplate.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping unreadable recurring row %s: %s", row.get("id"), e)
        return templates

    def get(self, template_id: str) -> RecurringTemplate:
        """Return one template by id."""
        for template in self.list_all():
            if template.id == template_id:
                return template
        raise NotFoundError(RECURRING_TABLE, template_id)

    def create(
        self,
        name: str,
        amount: Decimal | int | str,
        category: Category | str,
        frequency: Frequency | str,
        start_date: date | str,
        description: str | None = None,
        end_date: date | str | None = None,
    ) -> RecurringTemplate:
        """Define a new active template."""
        if not name or not name.strip():
            raise ValidationError("Please enter a name")
        category = coerce_category(category)
        try:
            template = RecurringTemplate(
                user_id=self.user_id,
                name=name.strip(),
                amount=coerce_amount(amount),
                category=category,
                frequency=coerce_frequency(frequency),
                start_date=coerce_date(start_date, "start date"),
                end_date=coerce_date(end_date, "end date") if end_date else None,
                description=description or f"Recurring {category.value}",
            )
        except ValueError as e:
            raise ValidationError(str(e)) from e

        row = self.store.insert(RECURRING_TABLE, template.to_row())
        logger.info("Created recurring template %s (%s)", row.get("id"), template.name)
        return RecurringTemplate.from_row(row)

    def update(self, template_id: str, **changes: Any) -> RecurringTemplate:
        """Edit template fields.

        The edited template is validated in full before anything is written,
        so a change that would break it (such as a start date after the
        last processed day) is rejected and the stored row is left alone.
        """
        unknown = set(changes) - self.UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Cannot update: {', '.join(sorted(unknown))}")

        typed: dict[str, Any] = {}
        for key, value in changes.items():
            if key == "amount":
                typed[key] = coerce_amount(value)
            elif key == "category":
                typed[key] = coerce_category(value)
            elif key == "frequency":
                typed[key] = coerce_frequency(value)
            elif key in ("start_date", "end_date"):
                typed[key] = coerce_date(value, key) if value else None
            else:
                typed[key] = value

        current = self.get(template_id)
        try:
            edited = replace(current, **typed)
        except ValueError as e:
            raise ValidationError(str(e)) from e

        edited_row = edited.to_row()
        row_changes = {key: edited_row[key] for key in changes}
        if "category" in changes:
            row_changes["type"] = edited_row["type"]

        row = self.store.update(RECURRING_TABLE, template_id, row_changes)
        return RecurringTemplate.from_row(row)

    def set_active(self, template_id: str, is_active: bool) -> RecurringTemplate:
        """Pause or resume a template."""
        row = self.store.update(RECURRING_TABLE, template_id, {"is_active": is_active})
        logger.info("Template %s %s", template_id, "resumed" if is_active else "paused")
        return RecurringTemplate.from_row(row)

    def delete(self, template_id: str) -> None:
        """Remove a template. Instances already created are kept."""
        self.store.delete(RECURRING_TABLE, template_id)

    def due(self, today: date | datetime | None = None) -> list[RecurringTemplate]:
        """Return the templates due on the given day."""
        return select_due(self.list_all(), today or date.today())

    def process(
        self, template: RecurringTemplate, now: datetime | None = None
    ) -> TransactionInstance:
        """Materialize one template and persist both results.

        The instance is inserted first and the template's last_processed
        marker second. If the marker cannot be written the inserted
        instance is deleted again so the next run does not double-post.
        """
        if template.id is None:
            raise ValidationError("Template has not been saved yet")

        instance, updated = materialize(template, now)
        stored = self.store.insert(TRANSACTIONS_TABLE, instance.to_row())
        try:
            self.store.update(
                RECURRING_TABLE,
                template.id,
                {"last_processed": updated.to_row()["last_processed"]},
            )
        except RowStoreError:
            self._discard(
                TRANSACTIONS_TABLE, stored, f"Could not mark template {template.id} processed"
            )
            raise

        logger.info("Materialized template %s as transaction %s", template.id, stored.get("id"))
        return TransactionInstance.from_row(stored)

    def process_due(self, now: datetime | None = None) -> ProcessResult:
        """Materialize every template that is due.

        A failure on one template is recorded and the rest are still
        processed.
        """
        now = now or datetime.now().astimezone()
        templates = self.list_all()
        due = select_due(templates, now)

        result = ProcessResult(skipped=len(templates) - len(due))
        for template in due:
            try:
                result.materialized.append(self.process(template, now))
            except RowStoreError as e:
                result.errors.append(f"{template.name}: {e}")
        return result


class TransactionService(_UserScopedService):
    """Record and remove individual transactions."""

    def list_all(self) -> list[TransactionInstance]:
        """Return the user's transactions, newest first."""
        transactions = []
        for row in self.store.fetch_all(TRANSACTIONS_TABLE, self.user_id):
            try:
                transactions.append(TransactionInstance.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping unreadable transaction row %s: %s", row.get("id"), e)
        return transactions

    def add(
        self,
        amount: Decimal | int | str,
        category: Category | str,
        description: str | None = None,
    ) -> TransactionInstance:
        """Record a transaction entered by the user."""
        category = coerce_category(category)
        instance = TransactionInstance(
            user_id=self.user_id,
            amount=coerce_amount(amount),
            category=category,
            description=description or f"Quick {category.value} transaction",
        )
        row = self.store.insert(TRANSACTIONS_TABLE, instance.to_row())
        return TransactionInstance.from_row(row)

    def delete(self, transaction_id: str) -> None:
        """Remove a transaction."""
        self.store.delete(TRANSACTIONS_TABLE, transaction_id)


class GoalService(_UserScopedService):
    """Manage savings goals and contributions."""

    def list_all(self) -> list[Goal]:
        """Return the user's goals, newest first.

        Rows that cannot be read are logged and left out.
        """
        goals = []
        for row in self.store.fetch_all(GOALS_TABLE, self.user_id):
            try:
                goals.append(Goal.from_row(row))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping unreadable goal row %s: %s", row.get("id"), e)
        return goals

    def get(self, goal_id: str) -> Goal:
        """Return one goal by id."""
        for goal in self.list_all():
            if goal.id == goal_id:
                return goal
        raise NotFoundError(GOALS_TABLE, goal_id)

    def create(
        self,
        name: str,
        target_amount: Decimal | int | str,
        deadline: date | str | None = None,
    ) -> Goal:
        """Create a goal with nothing saved yet."""
        if not name or not name.strip():
            raise ValidationError("Please fill in goal name and target amount")
        goal = Goal(
            user_id=self.user_id,
            name=name.strip(),
            target_amount=coerce_amount(target_amount, "target amount"),
            deadline=coerce_date(deadline, "deadline") if deadline else None,
        )
        row = self.store.insert(GOALS_TABLE, goal.to_row())
        return Goal.from_row(row)

    def contribute(
        self, goal_id: str, amount: Decimal | int | str
    ) -> tuple[Goal, TransactionInstance]:
        """Add money to a goal and record it as a goal expense.

        The transaction is inserted first and the goal balance second. If the
        balance cannot be written the transaction is deleted again.
        """
        contribution = coerce_amount(amount, "contribution")
        goal = self.get(goal_id).with_contribution(contribution)

        instance = TransactionInstance(
            user_id=self.user_id,
            amount=contribution,
            category=Category.GOAL,
            description=f"Contribution to {goal.name}",
        )
        stored = self.store.insert(TRANSACTIONS_TABLE, instance.to_row())
        try:
            row = self.store.update(
                GOALS_TABLE, goal_id, {"current_amount": format_amount(goal.current_amount)}
            )
        except RowStoreError:
            self._discard(TRANSACTIONS_TABLE, stored, f"Could not update goal {goal_id}")
            raise

        logger.info("Added %s to goal %s", contribution, goal_id)
        return Goal.from_row(row), TransactionInstance.from_row(stored)

    def delete(self, goal_id: str) -> None:
        """Remove a goal."""
        self.store.delete(GOALS_TABLE, goal_id)
