"""Tests for recurring template due-date evaluation."""

from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from moneymate.models import Category, Frequency, RecurringTemplate, TransactionKind
from moneymate.recurrence import is_due, materialize, select_due

MakeTemplate = Callable[..., RecurringTemplate]
TODAY = date(2024, 6, 15)


class TestIsDue:
    """Tests for is_due."""

    @pytest.mark.parametrize("frequency", list(Frequency))
    def test_inactive_is_never_due(self, make_template: MakeTemplate, frequency: Frequency) -> None:
        """Paused templates are not due whatever their dates."""
        never_run = make_template(frequency=frequency, is_active=False)
        long_ago = make_template(
            frequency=frequency, is_active=False, last_processed=date(2024, 1, 1)
        )
        assert is_due(never_run, TODAY) is False
        assert is_due(long_ago, TODAY) is False

    def test_never_processed_before_start(self, make_template: MakeTemplate) -> None:
        """A template is not due before its start date."""
        template = make_template(start_date=TODAY + timedelta(days=1))
        assert is_due(template, TODAY) is False

    def test_never_processed_on_and_after_start(self, make_template: MakeTemplate) -> None:
        """A never-processed template is due from its start date on."""
        template = make_template(frequency=Frequency.YEARLY, start_date=TODAY)
        assert is_due(template, TODAY) is True
        assert is_due(template, TODAY + timedelta(days=3)) is True

    @pytest.mark.parametrize(
        ("frequency", "not_due_days", "due_days"),
        [
            (Frequency.DAILY, 0, 1),
            (Frequency.WEEKLY, 6, 7),
            (Frequency.MONTHLY, 29, 30),
            (Frequency.YEARLY, 364, 365),
        ],
    )
    def test_threshold_boundaries(
        self,
        make_template: MakeTemplate,
        frequency: Frequency,
        not_due_days: int,
        due_days: int,
    ) -> None:
        """Elapsed whole days must reach the frequency threshold."""
        template = make_template(frequency=frequency, start_date=date(2020, 1, 1))

        just_before = replace(template, last_processed=TODAY - timedelta(days=not_due_days))
        on_threshold = replace(template, last_processed=TODAY - timedelta(days=due_days))

        assert is_due(just_before, TODAY) is False
        assert is_due(on_threshold, TODAY) is True

    def test_unknown_frequency_fails_closed(self, make_template: MakeTemplate) -> None:
        """A malformed frequency never makes a processed template due."""
        template = make_template(frequency="fortnightly", last_processed=date(2024, 1, 1))
        assert template.frequency == "fortnightly"
        assert is_due(template, TODAY) is False

    @pytest.mark.parametrize("stored", ["Weekly", "weekly ", "WEEKLY"])
    def test_inexact_frequency_fails_closed(
        self, make_template: MakeTemplate, stored: str
    ) -> None:
        """Stored frequencies must match exactly to count as recognized."""
        template = make_template(frequency=stored, last_processed=date(2024, 1, 1))
        assert template.frequency == stored
        assert is_due(template, TODAY) is False

    def test_past_end_date_is_not_due(self, make_template: MakeTemplate) -> None:
        """Evaluation stops once the end date has passed."""
        template = make_template(
            frequency=Frequency.DAILY,
            last_processed=date(2024, 5, 1),
            end_date=date(2024, 6, 1),
        )
        assert is_due(template, TODAY) is False
        assert is_due(template, date(2024, 6, 1)) is True

    def test_time_of_day_is_ignored(self, make_template: MakeTemplate) -> None:
        """Datetimes are compared by calendar day."""
        template = make_template(frequency=Frequency.DAILY, last_processed=date(2024, 6, 14))
        assert is_due(template, datetime(2024, 6, 15, 0, 1)) is True
        assert is_due(template, datetime(2024, 6, 14, 23, 59)) is False

    def test_repeated_calls_agree(self, make_template: MakeTemplate) -> None:
        """is_due has no hidden state."""
        template = make_template(frequency=Frequency.WEEKLY, last_processed=date(2024, 6, 8))
        assert is_due(template, TODAY) == is_due(template, TODAY)


class TestSelectDue:
    """Tests for select_due."""

    def test_selects_due_subset_in_order(self, make_template: MakeTemplate) -> None:
        """Only due templates are returned, in input order."""
        a = make_template(id="a", frequency=Frequency.DAILY, last_processed=TODAY)
        b = make_template(
            id="b", frequency=Frequency.WEEKLY, last_processed=TODAY - timedelta(days=8)
        )
        c = make_template(id="c", is_active=False)

        assert select_due([a, b, c], TODAY) == [b]

    def test_preserves_order_of_multiple_due(self, make_template: MakeTemplate) -> None:
        """Several due templates keep their relative order."""
        first = make_template(id="first", start_date=date(2024, 6, 1))
        second = make_template(id="second", start_date=date(2024, 1, 1))

        result = select_due([first, second], TODAY)

        assert [t.id for t in result] == ["first", "second"]

    def test_accepts_any_iterable(self, make_template: MakeTemplate) -> None:
        """Generators are consumed once."""
        templates = (make_template(id=str(i)) for i in range(3))
        assert len(select_due(templates, TODAY)) == 3

    def test_empty_input(self) -> None:
        """No templates means nothing due."""
        assert select_due([], TODAY) == []


class TestMaterialize:
    """Tests for materialize."""

    def test_copies_template_fields(self, make_template: MakeTemplate) -> None:
        """The instance carries amount, category, kind and description."""
        template = make_template(amount=Decimal("1500"), category=Category.NEED)
        now = datetime(2024, 6, 15, 9, 30, tzinfo=timezone.utc)

        instance, updated = materialize(template, now)

        assert instance.amount == Decimal("1500")
        assert instance.category is Category.NEED
        assert instance.kind is TransactionKind.EXPENSE
        assert instance.description == "Monthly rent"
        assert instance.user_id == template.user_id
        assert instance.created_at == now
        assert instance.id is None
        assert updated.last_processed == date(2024, 6, 15)

    def test_other_template_fields_unchanged(self, make_template: MakeTemplate) -> None:
        """Only last_processed changes on the returned template."""
        template = make_template()
        _, updated = materialize(template, datetime(2024, 6, 15, tzinfo=timezone.utc))

        assert replace(updated, last_processed=None) == template

    def test_input_template_not_modified(self, make_template: MakeTemplate) -> None:
        """materialize returns new values instead of mutating."""
        template = make_template()
        materialize(template, datetime(2024, 6, 15, tzinfo=timezone.utc))
        assert template.last_processed is None

    def test_income_template_produces_income(self, make_template: MakeTemplate) -> None:
        """Kind follows the income category."""
        template = make_template(name="Salary", category=Category.INCOME, amount=Decimal("3000"))
        instance, _ = materialize(template, datetime(2024, 6, 15, tzinfo=timezone.utc))
        assert instance.kind is TransactionKind.INCOME

    def test_not_due_again_until_threshold(self, make_template: MakeTemplate) -> None:
        """After persisting the update the template waits for the next window."""
        template = make_template(frequency=Frequency.WEEKLY, start_date=date(2024, 6, 1))
        assert is_due(template, TODAY)

        _, updated = materialize(template, datetime(2024, 6, 15, 12, tzinfo=timezone.utc))

        assert is_due(updated, TODAY) is False
        assert is_due(updated, TODAY + timedelta(days=6)) is False
        assert is_due(updated, TODAY + timedelta(days=7)) is True

    def test_defaults_to_current_time(self, make_template: MakeTemplate) -> None:
        """Without an explicit time the instance is stamped now."""
        template = make_template(start_date=date(2024, 1, 1))
        before = datetime.now(timezone.utc)

        instance, updated = materialize(template)

        assert instance.created_at is not None
        assert instance.created_at >= before
        assert updated.last_processed == instance.created_at.date()
