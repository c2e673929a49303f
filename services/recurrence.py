"""Date arithmetic for recurring definitions and bills.

Month-based frequencies clamp to the last day of short months and always
re-anchor on the series' original day-of-month, so a series started on the
31st runs Jan 31, Feb 28/29, Mar 31, Apr 30, ... ``advance`` and
``is_due_on`` share that rule, which keeps them describing the same set of
dates.
"""
from datetime import date, timedelta
from utils.date_helpers import add_months, clamp_day_to_month, months_between

MONTHS_PER_STEP = {"monthly": 1, "quarterly": 3, "yearly": 12}


def advance(d: date, frequency: str, interval: int = 1, anchor_day: int | None = None) -> date:
    """Return the occurrence `interval` periods after d."""
    if interval < 1:
        raise ValueError("Interval must be at least 1")
    if frequency == "daily":
        return d + timedelta(days=interval)
    if frequency == "weekly":
        return d + timedelta(days=7 * interval)
    if frequency in MONTHS_PER_STEP:
        return add_months(d, MONTHS_PER_STEP[frequency] * interval, anchor_day)
    raise ValueError(f"Invalid frequency: {frequency}")


def is_due_on(definition, target: date) -> bool:
    """True when `definition` has an occurrence on `target`.

    `definition` needs start_date, end_date, frequency and interval.
    """
    start = definition.start_date
    if target < start:
        return False
    if definition.end_date and target > definition.end_date:
        return False

    interval = definition.interval or 1

    if definition.frequency == "daily":
        return (target - start).days % interval == 0

    if definition.frequency == "weekly":
        return (target - start).days % (7 * interval) == 0

    if definition.frequency == "monthly":
        if months_between(start, target) % interval != 0:
            return False
        return target.day == clamp_day_to_month(target.year, target.month, start.day)

    if definition.frequency == "yearly":
        if (target.year - start.year) % interval != 0 or target.month != start.month:
            return False
        return target.day == clamp_day_to_month(target.year, target.month, start.day)

    return False


def occurrences(definition, window_start: date, window_end: date):
    """Yield the occurrences of `definition` inside [window_start, window_end]."""
    end = window_end
    if definition.end_date and definition.end_date < end:
        end = definition.end_date
    anchor = definition.start_date.day
    current = definition.start_date
    while current <= end:
        if current >= window_start:
            yield current
        current = advance(current, definition.frequency, definition.interval or 1, anchor)


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (end - start).days
