"""
Day and month boundaries for range filters.

Filters always use half-open ``[start, end)`` ranges on the timestamp
columns so they work the same on every backend.
"""

from datetime import date, datetime, time, timedelta


def day_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def range_bounds(date_from: date = None, date_to: date = None) -> tuple:
    """Inclusive calendar range → half-open datetime range (either side may be None)."""
    start = datetime.combine(date_from, time.min) if date_from else None
    end = datetime.combine(date_to, time.min) + timedelta(days=1) if date_to else None
    return start, end


def month_bounds(day: date) -> tuple[datetime, datetime]:
    start = datetime(day.year, day.month, 1)
    if day.month == 12:
        end = datetime(day.year + 1, 1, 1)
    else:
        end = datetime(day.year, day.month + 1, 1)
    return start, end


def previous_month(day: date) -> date:
    first = date(day.year, day.month, 1)
    return first - timedelta(days=1)


def minutes_since(moment: datetime, now: datetime = None) -> int:
    now = now or datetime.now()
    return max(int((now - moment).total_seconds() // 60), 0)
