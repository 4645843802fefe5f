import calendar
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Optional

from .models import RecurringType, Subtask, Task, new_id


def add_months(dt: datetime, months: int) -> datetime:
    """Advance by calendar months, clamping to the last day of the target month.

    Jan 31 + 1 month -> Feb 28 (or 29 in a leap year).
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def advance(dt: datetime, recurring_type: RecurringType) -> datetime:
    if recurring_type == RecurringType.DAILY:
        return dt + timedelta(days=1)
    if recurring_type == RecurringType.WEEKLY:
        return dt + timedelta(days=7)
    if recurring_type == RecurringType.MONTHLY:
        return add_months(dt, 1)
    raise ValueError(f"Unknown recurring type: {recurring_type!r}")


def next_occurrence(
    from_task: Task,
    recurring_type: RecurringType,
    now: Optional[datetime] = None,
) -> Task:
    """Build the successor of a completed recurring task.

    The schedule is computed from the current time, not from the source task's
    own dates. The source task is left untouched and the result is not added
    to any collection.
    """
    next_date = advance(now if now is not None else datetime.now(), RecurringType(recurring_type))
    subtasks = [
        Subtask(title=s.title, id=new_id(), completed=False, created_at=s.created_at)
        for s in from_task.subtasks
    ]
    return replace(
        from_task,
        id=new_id(),
        completed=False,
        tags=list(from_task.tags),
        subtasks=subtasks,
        created_at=next_date,
    )
