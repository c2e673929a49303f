from datetime import date, datetime, timedelta
import calendar
from utils.constants import DATE_FORMAT


def today() -> date:
    return date.today()


def parse_date(value) -> date | None:
    """Parse a YYYY-MM-DD string (or pass a date through), returning None on failure."""
    if not value:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    for fmt in ("%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"):
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    return None


def format_date(d: date | None) -> str | None:
    if d is None:
        return None
    return d.strftime(DATE_FORMAT)


def clamp_day_to_month(year: int, month: int, day: int) -> int:
    """Clamp day to valid range for the given year/month."""
    max_day = calendar.monthrange(year, month)[1]
    return min(day, max_day)


def add_months(d: date, n: int, anchor_day: int | None = None) -> date:
    """Add n months to date d, clamping the day to month end.

    anchor_day is the day-of-month the series wants; when omitted d.day is
    used. Passing the original day keeps a 31st series from sliding to the
    28th after February.
    """
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    day = clamp_day_to_month(year, month, anchor_day or d.day)
    return d.replace(year=year, month=month, day=day)


def months_between(start: date, end: date) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def date_range(start: date, end: date):
    """Yield every calendar day in [start, end]."""
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def days_before(d: date, days: int) -> tuple[date, date]:
    """Return the (first, last) day of the `days`-long window ending the day before d."""
    return d - timedelta(days=days), d - timedelta(days=1)
