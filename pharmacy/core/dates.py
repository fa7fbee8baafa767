from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_date(value):
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        value_text = value.strip()
        if not value_text:
            return None
        try:
            return date.fromisoformat(value_text[:10])
        except ValueError:
            return None
    return None


def _day_start(value: date) -> datetime:
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def date_range_bounds(
    start_date: Optional[str], end_date: Optional[str]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Return ``[start, end)`` datetimes covering both calendar days.

    The range only applies when both ends are given; a single bound (or none)
    means the report is unbounded. Raises ``ValueError`` on unparsable input.
    """
    if not start_date or not end_date:
        return None, None
    start = normalize_date(start_date)
    end = normalize_date(end_date)
    if start is None or end is None:
        raise ValueError("start_date and end_date must be YYYY-MM-DD")
    if end < start:
        raise ValueError("end_date must not be before start_date")
    try:
        end_bound = _day_start(end) + timedelta(days=1)
    except OverflowError as exc:
        raise ValueError("end_date is out of range") from exc
    return _day_start(start), end_bound


def period_start(report_type: Optional[str], now: Optional[datetime] = None) -> datetime:
    """Start of today for ``daily``; start of the month otherwise."""
    now = now or utc_now()
    if (report_type or "").strip().lower() == "daily":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def one_month_before(now: datetime) -> datetime:
    month = now.month - 1 or 12
    year = now.year - 1 if now.month == 1 else now.year
    # Clamp the day for short months (31 Mar -> 28/29 Feb).
    day = now.day
    while True:
        try:
            return now.replace(year=year, month=month, day=day)
        except ValueError:
            day -= 1


def day_sequence(start: date, end: date):
    current = start
    while current <= end:
        yield current
        if current == date.max:
            return
        current += timedelta(days=1)
