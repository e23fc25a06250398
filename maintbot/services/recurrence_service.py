"""
Recurrence expansion for master maintenance tasks.

A master task (recurrence != One-Time) defines a start/end window. Expanding it
yields one one-time instance per occurrence date, both endpoints inclusive.
Pure functions only: nothing here touches the database.
"""
from datetime import date, timedelta
from typing import List, Optional

from maintbot.database.models import MaintenanceTask, Recurrence, TaskStatus

DAY_STEPS = {
    Recurrence.weekly.value: 7,
    Recurrence.bi_weekly.value: 14,
}

MONTH_STEPS = {
    Recurrence.monthly.value: 1,
    Recurrence.quarterly.value: 3,
    Recurrence.semi_annually.value: 6,
    Recurrence.annually.value: 12,
}

# Columns never copied from the master onto an instance
_SKIP_COLUMNS = {"id", "start_date", "end_date"}


def add_months(d: date, months: int) -> date:
    """
    Add calendar months with day-of-month overflow.

    A day that does not exist in the target month rolls forward into the
    next month instead of being clamped: Jan 31 + 1 month is Mar 2 in a leap
    year (Feb 31 -> Mar 2). Existing schedules were generated this way, so
    the quirk is kept.
    """
    month_index = d.month - 1 + months
    year = d.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, 1) + timedelta(days=d.day - 1)


def next_occurrence(current: date, recurrence: str) -> Optional[date]:
    """Step the cursor once. None for One-Time or unknown recurrences."""
    if recurrence in DAY_STEPS:
        return current + timedelta(days=DAY_STEPS[recurrence])
    if recurrence in MONTH_STEPS:
        return add_months(current, MONTH_STEPS[recurrence])
    return None


def occurrence_dates(start: Optional[date], end: Optional[date], recurrence: str) -> List[date]:
    """All occurrence dates in [start, end]. Empty when the window is missing or inverted."""
    recurrence = Recurrence(recurrence).value
    if not start or not end or recurrence == Recurrence.one_time.value:
        return []

    dates = []
    current = start
    while current <= end:
        dates.append(current)
        current = next_occurrence(current, recurrence)
        if current is None:
            break
    return dates


def expand_recurring_task(master: MaintenanceTask) -> List[dict]:
    """
    Build the instance payloads for a master task.

    Each payload is a copy of the master's columns with recurrence forced to
    One-Time, status New, task_date set to the occurrence and
    recurring_task_id pointing at the master. No id is set: ids are assigned
    when the instances are persisted. Callers must not persist the same
    expansion twice, nothing here deduplicates.
    """
    dates = occurrence_dates(master.start_date, master.end_date, master.recurrence)
    if not dates:
        return []

    base = {
        column.name: getattr(master, column.name)
        for column in MaintenanceTask.__table__.columns
        if column.name not in _SKIP_COLUMNS
    }

    instances = []
    for occurrence in dates:
        instance = dict(base)
        instance.update(
            recurrence=Recurrence.one_time.value,
            status=TaskStatus.new.value,
            task_date=occurrence,
            recurring_task_id=master.id,
        )
        instances.append(instance)
    return instances
