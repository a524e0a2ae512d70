"""Expansion of recurring transaction templates into dated instances."""

import calendar
import logging
from datetime import date, timedelta

from .models import Frequency, RecurrenceResult, Transaction

logger = logging.getLogger(__name__)

MAX_CATCHUP_PERIODS = 12
RECURRING_SUFFIX = " (Recorrente)"


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def advance_date(
    current: date, frequency: Frequency, recurrence_day: int | None = None
) -> date:
    """
    Move a date forward by one recurrence period.

    Monthly steps go through the first of the next month and then clamp to
    ``recurrence_day``, so day 31 lands on the 30th or 28th/29th instead of
    spilling into the following month.

    Args:
        current: Date of the previous occurrence
        frequency: Recurrence period
        recurrence_day: Preferred day of month for MONTHLY and YEARLY
            (defaults to the day of ``current``)

    Returns:
        Date of the next occurrence
    """
    if frequency == Frequency.DAILY:
        return current + timedelta(days=1)
    if frequency == Frequency.WEEKLY:
        return current + timedelta(days=7)
    if frequency == Frequency.MONTHLY:
        year, month = current.year, current.month + 1
        if month > 12:
            year, month = year + 1, 1
        day = min(recurrence_day or current.day, days_in_month(year, month))
        return date(year, month, day)
    if frequency == Frequency.YEARLY:
        year = current.year + 1
        # Feb 29 falls back to Feb 28 outside leap years
        day = min(recurrence_day or current.day, days_in_month(year, current.month))
        return date(year, current.month, day)
    raise ValueError(f"Unsupported frequency: {frequency}")


def _matches(candidate: Transaction, template: Transaction, on: date) -> bool:
    return (
        candidate.date == on
        and candidate.account_id == template.account_id
        and candidate.amount == template.amount
        and candidate.type == template.type
        and candidate.description
        in (template.description, template.description + RECURRING_SUFFIX)
    )


def _is_template(t: Transaction) -> bool:
    return not t.deleted and t.is_recurring and t.frequency is not None


def process_recurring_transactions(
    transactions: list[Transaction],
    today: date | None = None,
    max_periods: int = MAX_CATCHUP_PERIODS,
) -> RecurrenceResult:
    """
    Materialize every overdue occurrence of the recurring templates.

    Each template is caught up from its ``last_generated`` marker (or its own
    date) to ``today``, at most ``max_periods`` periods per call. Occurrences
    that already exist in ``transactions`` or earlier in this batch are not
    generated again, so running the expansion twice yields nothing new.

    Args:
        transactions: Full transaction log, templates included
        today: Reference date (defaults to the current date)
        max_periods: Catch-up bound per template

    Returns:
        New instances and the templates with their advanced marker
    """
    today = today or date.today()
    result = RecurrenceResult()

    for template in transactions:
        if not _is_template(template):
            continue

        if not template.account_id and (template.owner_paid or not template.is_shared):
            logger.warning(
                f"Skipping recurring template {template.id}: no account and "
                f"not shared with another payer"
            )
            continue

        generated = _expand_template(
            template, transactions, result.new_transactions, today, max_periods
        )
        if not generated:
            continue

        result.new_transactions.extend(generated)
        last_date = generated[-1].date
        if last_date != template.last_generated:
            result.updated_templates.append(
                template.model_copy(update={"last_generated": last_date})
            )

    if result.new_transactions:
        logger.info(
            f"Generated {len(result.new_transactions)} recurring instance(s) "
            f"from {len(result.updated_templates)} template(s)"
        )

    return result


def _expand_template(
    template: Transaction,
    existing: list[Transaction],
    batch: list[Transaction],
    today: date,
    max_periods: int,
) -> list[Transaction]:
    generated: list[Transaction] = []
    anchor = template.last_generated or template.date
    # Day of month stays pinned to the template, not to the last (clamped) occurrence
    day = template.recurrence_day or template.date.day
    occurrence = advance_date(anchor, template.frequency, day)
    live = [t for t in existing if not t.deleted]

    for _ in range(max_periods):
        if occurrence > today:
            break

        already_exists = any(_matches(t, template, occurrence) for t in live)
        in_batch = any(_matches(t, template, occurrence) for t in batch + generated)

        if not already_exists and not in_batch:
            generated.append(
                template.model_copy(
                    update={
                        "id": None,
                        "date": occurrence,
                        "description": template.description + RECURRING_SUFFIX,
                        "is_recurring": False,
                        "is_installment": False,
                        "last_generated": None,
                    },
                    deep=True,
                )
            )
        else:
            logger.debug(f"Occurrence {occurrence} of {template.id} already exists")

        occurrence = advance_date(occurrence, template.frequency, day)

    return generated
