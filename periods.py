import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from config import get_settings
from errors import ValidationError


logger = logging.getLogger(__name__)

PERIOD_TOKENS = ("week", "month", "year")


@dataclass(frozen=True)
class Period:
    slug: str
    start: date
    end: date


@dataclass(frozen=True)
class WindowPair:
    current: Period
    previous: Period


def local_now() -> datetime:
    """Naive wall-clock time in the configured timezone."""
    tz = ZoneInfo(get_settings().timezone)
    return datetime.now(tz).replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def days_in_month(year: int, month: int) -> int:
    return (month_end(date(year, month, 1)) - date(year, month, 1)).days + 1


def month_start(d: date) -> date:
    return d.replace(day=1)


def month_end(d: date) -> date:
    first = month_start(d)
    if first.month == 12:
        next_month = first.replace(year=first.year + 1, month=1)
    else:
        next_month = first.replace(month=first.month + 1)
    return next_month - date.resolution


def add_months(d: date, count: int) -> date:
    """Shift by whole calendar months, clamping the day to the target month."""
    month_index = (d.year * 12) + (d.month - 1) + count
    year = month_index // 12
    month = (month_index % 12) + 1
    return date(year, month, min(d.day, days_in_month(year, month)))


def week_start(d: date) -> date:
    # Sunday-based weeks: weekday() is 0 for Monday, 6 for Sunday.
    return d - timedelta(days=(d.weekday() + 1) % 7)


def resolve_window(period: Optional[str], *, today: Optional[date] = None) -> WindowPair:
    today = today or local_today()
    if period not in PERIOD_TOKENS:
        if period:
            logger.debug(f"resolve_window: unknown period={period!r}, using month")
        period = "month"

    if period == "week":
        start = week_start(today)
        end = start + timedelta(days=6)
        shift = timedelta(days=7)
        return WindowPair(
            Period("week", start, end),
            Period("week", start - shift, end - shift),
        )

    if period == "year":
        return WindowPair(
            Period("year", date(today.year, 1, 1), date(today.year, 12, 31)),
            Period("year", date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)),
        )

    first = month_start(today)
    prev_end = first - date.resolution
    return WindowPair(
        Period("month", first, month_end(first)),
        Period("month", month_start(prev_end), prev_end),
    )


def resolve_range(
    start: Optional[str],
    end: Optional[str],
    *,
    today: Optional[date] = None,
) -> Period:
    """Explicit [start, end] range, or the current month when both are absent."""
    if not start and not end:
        return resolve_window("month", today=today).current
    if not start or not end:
        raise ValidationError("Custom range requires start and end dates")
    try:
        start_date = date.fromisoformat(start)
        end_date = date.fromisoformat(end)
    except ValueError as exc:
        raise ValidationError(f"Malformed date: {exc}") from exc
    if start_date > end_date:
        raise ValidationError("Start date must be before end date")
    return Period("custom", start_date, end_date)
