"""Payroll week arithmetic. A payroll week ends on Friday."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

FRIDAY = 4
WORKDAYS_PER_WEEK = 5


def week_ending_for(day: date) -> date:
    """The Friday on or after ``day``."""
    if isinstance(day, datetime):
        day = day.date()
    return day + timedelta(days=(FRIDAY - day.weekday()) % 7)


def workdays(week_ending: date) -> list[date]:
    """Monday to Friday of the week closing on ``week_ending``."""
    return [
        week_ending - timedelta(days=offset)
        for offset in range(WORKDAYS_PER_WEEK - 1, -1, -1)
    ]


def edit_deadline(week_ending: date, grace_days: int = 0) -> datetime:
    """Midnight at the end of the week-ending Friday, plus optional grace."""
    return datetime.combine(week_ending + timedelta(days=1 + grace_days), time.min)


def is_editable(week_ending: date, now: datetime, grace_days: int = 0) -> bool:
    return now.replace(tzinfo=None) < edit_deadline(week_ending, grace_days)
