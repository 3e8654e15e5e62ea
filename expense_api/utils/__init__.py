"""
Utils package
"""

from .dates import (
    add_months,
    add_years,
    clamp_day,
    days_in_month,
    month_bounds,
    month_end,
    month_floor,
    months_between,
)

__all__ = [
    "add_months",
    "add_years",
    "clamp_day",
    "days_in_month",
    "month_bounds",
    "month_end",
    "month_floor",
    "months_between",
]
