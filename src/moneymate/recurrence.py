"""Due-date evaluation for recurring transaction templates."""

import logging
from collections.abc import Iterable
from datetime import date, datetime, timezone

from moneymate.models import Frequency, RecurringTemplate, TransactionInstance

logger = logging.getLogger(__name__)


def _as_date(value: date | datetime) -> date:
    """Truncate to whole-day granularity."""
    if isinstance(value, datetime):
        return value.date()
    return value


def is_due(template: RecurringTemplate, now: date | datetime) -> bool:
    """Decide whether a new instance should be generated from a template.

    A template that has never been processed becomes due on its start date.
    After that it is due once the whole days elapsed since it was last
    processed reach the frequency threshold. Inactive templates, templates
    past their end date and templates with an unrecognized frequency are
    never due.

    Args:
        template: Template to evaluate
        now: Reference day (time of day is ignored)

    Returns:
        True if an instance should be materialized
    """
    today = _as_date(now)

    if not template.is_active:
        return False

    if template.end_date is not None and today > template.end_date:
        return False

    if template.last_processed is None:
        return today >= template.start_date

    frequency = Frequency.parse(template.frequency)
    if frequency is None:
        logger.debug(
            "Template %s has unrecognized frequency %r", template.id, template.frequency
        )
        return False

    elapsed_days = (today - template.last_processed).days
    return elapsed_days >= frequency.threshold_days


def select_due(
    templates: Iterable[RecurringTemplate], now: date | datetime
) -> list[RecurringTemplate]:
    """Return the templates that are due, preserving input order."""
    return [template for template in templates if is_due(template, now)]


def materialize(
    template: RecurringTemplate, now: datetime | None = None
) -> tuple[TransactionInstance, RecurringTemplate]:
    """Produce a transaction from a template and advance its marker.

    The caller is expected to have checked is_due and to persist both
    results before evaluating the template again. The input template is
    not modified.

    Returns:
        The new instance and a copy of the template with last_processed
        set to the day of `now`
    """
    now = now or datetime.now(timezone.utc)
    instance = TransactionInstance(
        user_id=template.user_id,
        amount=template.amount,
        category=template.category,
        description=template.description,
        created_at=now,
    )
    return instance, template.with_last_processed(now.date())
