"""
Billing-period and money helpers.

A billing period is a calendar month written "YYYY-MM". Money is
Decimal rounded half-up to cents.
"""

import calendar
from datetime import date
from decimal import Decimal, ROUND_HALF_UP

from residence_ledger.exceptions import InvalidPeriod

CENTS = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round any numeric value to cents."""
    if value is None or value == "":
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def month_key(day: date) -> str:
    return f"{day.year:04d}-{day.month:02d}"


def parse_period(period: str) -> tuple[int, int]:
    """Split "YYYY-MM" into (year, month), rejecting anything else."""
    try:
        year_text, month_text = period.split("-")
        year, month = int(year_text), int(month_text)
    except (AttributeError, ValueError):
        raise InvalidPeriod(
            f"Invalid period '{period}', expected YYYY-MM",
            details={"period": period},
        )
    if not 1 <= month <= 12 or len(year_text) != 4 or len(month_text) != 2:
        raise InvalidPeriod(
            f"Invalid period '{period}', expected YYYY-MM",
            details={"period": period},
        )
    return year, month


def days_in_month(period: str) -> int:
    year, month = parse_period(period)
    return calendar.monthrange(year, month)[1]


def month_bounds(period: str) -> tuple[date, date]:
    """First and last day of the period."""
    year, month = parse_period(period)
    return date(year, month, 1), date(year, month, days_in_month(period))


def next_period(period: str) -> str:
    year, month = parse_period(period)
    if month == 12:
        return f"{year + 1:04d}-01"
    return f"{year:04d}-{month + 1:02d}"


def periods_between(first: str, last: str) -> list[str]:
    """Every period from first to last, inclusive."""
    parse_period(first)
    parse_period(last)
    periods = []
    current = first
    while current <= last:
        periods.append(current)
        current = next_period(current)
    return periods


def due_date(period: str, due_day: int = 1) -> date:
    """The day a period's charges fall due, clamped to the month's length."""
    year, month = parse_period(period)
    return date(year, month, min(max(due_day, 1), days_in_month(period)))
