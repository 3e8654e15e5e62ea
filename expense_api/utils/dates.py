"""
Calendar helpers

Month arithmetic and period labels shared by the recurring-rule schedule,
budgets and analytics bucketing.
"""

import calendar
from datetime import date


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def clamp_day(year: int, month: int, day: int) -> date:
    """
    Build a date, clamping ``day`` to the length of the month.

    Example:
        >>> clamp_day(2025, 2, 31)
        datetime.date(2025, 2, 28)
    """
    return date(year, month, min(day, days_in_month(year, month)))


def add_months(base: date, delta: int) -> date:
    """
    Shift ``base`` by ``delta`` calendar months keeping its day of month.

    The day is clamped when the target month is shorter, so the result of
    several shifts from the same anchor never drifts:

        >>> add_months(date(2025, 1, 31), 1)
        datetime.date(2025, 2, 28)
        >>> add_months(date(2025, 1, 31), 2)
        datetime.date(2025, 3, 31)

    Args:
        base: anchor date
        delta: number of months, may be negative

    Returns:
        the shifted date
    """
    index = base.month - 1 + delta
    year = base.year + index // 12
    month = index % 12 + 1
    return clamp_day(year, month, base.day)


def add_years(base: date, delta: int) -> date:
    """Shift ``base`` by ``delta`` years; Feb 29 becomes Feb 28 in non-leap years."""
    return clamp_day(base.year + delta, base.month, base.day)


def month_floor(value: date) -> date:
    return date(value.year, value.month, 1)


def month_end(value: date) -> date:
    return date(value.year, value.month, days_in_month(value.year, value.month))


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Return the first and last day of the given month."""
    first = date(year, month, 1)
    return first, month_end(first)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from the month of ``start`` to the month of ``end``."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def day_label(value: date) -> str:
    return value.strftime("%b %d")


def month_label(value: date) -> str:
    return value.strftime("%b %Y")


def period_label(year: int, month: int) -> str:
    """Long month label used for budgets, e.g. ``January 2025``."""
    return f"{calendar.month_name[month]} {year}"
