from __future__ import annotations

import datetime as dt

from dateutil.relativedelta import relativedelta

FREQUENCIES = ("daily", "weekly", "monthly", "custom")

# Python weekday(): Monday == 0
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

DUE_HOUR = 9


def parse_day_of_week(day: str | None) -> int | None:
    """Weekday index for a day name (case-insensitive), None when missing or unknown."""
    if not day:
        return None
    name = str(day).strip().lower()
    return WEEKDAYS.index(name) if name in WEEKDAYS else None


def _as_date(value: dt.date | dt.datetime | str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    return dt.date.fromisoformat(str(value)[:10])


def initial_due_date(
    frequency: str,
    start_date: dt.date | dt.datetime | str,
    now: dt.datetime,
    day_of_week: str | None = None,
    day_of_month: int | None = None,
) -> dt.datetime:
    """
    First due instant of a recurring template.

    Starts at start_date 09:00 local. When that is already past, applies one
    alignment step per frequency:
    - daily: +1 day
    - weekly: forward to day_of_week (0 days if already on it); unknown day -> +7 days
    - monthly: move to day_of_month (clamped to month length), +1 month if still past;
      no day -> +1 month
    - custom: +1 day
    The result is not advanced further even if it is still in the past.
    """
    if frequency not in FREQUENCIES:
        raise ValueError(f"unknown frequency: {frequency}")
    due = dt.datetime.combine(_as_date(start_date), dt.time(DUE_HOUR, 0))
    if due >= now:
        return due

    if frequency == "daily":
        return due + dt.timedelta(days=1)
    if frequency == "weekly":
        target = parse_day_of_week(day_of_week)
        if target is None:
            return due + dt.timedelta(days=7)
        return due + dt.timedelta(days=(target - due.weekday()) % 7)
    if frequency == "monthly":
        if not day_of_month:
            return due + relativedelta(months=1)
        aligned = due + relativedelta(day=int(day_of_month))
        if aligned < now:
            aligned = due + relativedelta(months=1, day=int(day_of_month))
        return aligned
    # custom: cron-like schedules are not interpreted
    return due + dt.timedelta(days=1)


def plain_step(frequency: str, due: dt.datetime) -> dt.datetime:
    """Advance a due date by one period without re-aligning weekday or month day."""
    if frequency == "daily":
        return due + dt.timedelta(days=1)
    if frequency == "weekly":
        return due + dt.timedelta(days=7)
    if frequency == "monthly":
        return due + relativedelta(months=1)
    if frequency == "custom":
        return due + dt.timedelta(days=7)
    raise ValueError(f"unknown frequency: {frequency}")
