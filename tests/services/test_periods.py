"""
Tests for billing-period and money helpers.
"""

from datetime import date
from decimal import Decimal

import pytest

from residence_ledger.exceptions import InvalidPeriod
from residence_ledger.periods import (
    due_date,
    month_bounds,
    next_period,
    parse_period,
    periods_between,
    to_money,
)


def test_to_money_rounds_half_up():
    assert to_money("2.345") == Decimal("2.35")
    assert to_money(Decimal("170")) == Decimal("170.00")
    assert to_money(None) == Decimal("0.00")


@pytest.mark.parametrize("period", ["2025-13", "2025-5", "25-05", "May 2025", ""])
def test_invalid_period_rejected(period):
    with pytest.raises(InvalidPeriod):
        parse_period(period)


def test_month_bounds_handles_leap_year():
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 2, 29))


def test_next_period_rolls_over_year():
    assert next_period("2025-12") == "2026-01"


def test_periods_between_is_inclusive():
    assert periods_between("2025-11", "2026-02") == [
        "2025-11", "2025-12", "2026-01", "2026-02",
    ]


def test_due_date_is_clamped_to_month_end():
    assert due_date("2025-02", 31) == date(2025, 2, 28)
    assert due_date("2025-05") == date(2025, 5, 1)
