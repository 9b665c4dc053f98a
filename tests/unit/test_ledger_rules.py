"""Unit tests for accrual date math and adjustment arithmetic"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from collectbook.domain.accrual import build_accrual_candidates, parse_daily_increment
from collectbook.domain.adjustments import (
    apply_adjustment,
    next_days_count,
    parse_amount,
    reached_milestone,
    reversal_delta,
)
from collectbook.domain.exceptions import ConfigurationError, InvalidAmountError
from collectbook.domain.models import AdjustmentKind, Ledger
from collectbook.utils.date_utils import dates_after, generate_date_range


def test_parse_daily_increment_valid():
    assert parse_daily_increment("20.00") == Decimal("20.00")
    assert parse_daily_increment(" 7.5 ") == Decimal("7.50")


@pytest.mark.parametrize("raw", [None, "", "abc", "0", "-5", "NaN", "Infinity"])
def test_parse_daily_increment_rejects_bad_values(raw):
    with pytest.raises(ConfigurationError):
        parse_daily_increment(raw)


def test_candidates_cover_elapsed_days_exclusive_of_last():
    member_id = uuid.uuid4()
    rows = build_accrual_candidates(member_id, date(2026, 3, 1), date(2026, 3, 4), Decimal("20.00"))

    assert [r.accrued_for_date for r in rows] == [date(2026, 3, 2), date(2026, 3, 3), date(2026, 3, 4)]
    assert all(r.member_id == member_id and r.amount == Decimal("20.00") for r in rows)


def test_candidates_empty_when_already_accrued_or_ahead():
    member_id = uuid.uuid4()
    assert build_accrual_candidates(member_id, date(2026, 3, 4), date(2026, 3, 4), Decimal("20")) == []
    assert build_accrual_candidates(member_id, date(2026, 3, 6), date(2026, 3, 4), Decimal("20")) == []


def test_date_range_helpers():
    assert generate_date_range(date(2026, 3, 1), date(2026, 3, 3)) == [
        date(2026, 3, 1),
        date(2026, 3, 2),
        date(2026, 3, 3),
    ]
    assert generate_date_range(date(2026, 3, 3), date(2026, 3, 1)) == []
    assert dates_after(date(2026, 3, 3), date(2026, 3, 3)) == []


def test_adjustment_kind_properties():
    assert AdjustmentKind.BALANCE_DEDUCT.ledger is Ledger.BALANCE
    assert AdjustmentKind.SAVINGS_WITHDRAW.ledger is Ledger.SAVINGS
    assert AdjustmentKind.BALANCE_DEDUCT.adjustment_type == "DEDUCT"
    assert AdjustmentKind.SAVINGS_INCREASE.adjustment_type == "INCREASE"
    assert AdjustmentKind.from_row(Ledger.SAVINGS, "WITHDRAW") is AdjustmentKind.SAVINGS_WITHDRAW


def test_apply_adjustment_direction():
    assert apply_adjustment(Decimal("5000.00"), AdjustmentKind.BALANCE_DEDUCT, Decimal("500.00")) == Decimal("4500.00")
    assert apply_adjustment(Decimal("5000.00"), AdjustmentKind.BALANCE_INCREASE, Decimal("500.00")) == Decimal("5500.00")
    assert apply_adjustment(Decimal("100.00"), AdjustmentKind.SAVINGS_WITHDRAW, Decimal("30.00")) == Decimal("70.00")
    assert apply_adjustment(Decimal("100.00"), AdjustmentKind.SAVINGS_INCREASE, Decimal("30.00")) == Decimal("130.00")


def test_reversal_delta_is_inverse_of_posting():
    for kind in AdjustmentKind:
        before = Decimal("1000.00")
        after = apply_adjustment(before, kind, Decimal("125.50"))
        assert after + reversal_delta(kind, Decimal("125.50")) == before


def test_parse_amount():
    assert parse_amount("500") == Decimal("500.00")
    assert parse_amount(Decimal("0.015")) == Decimal("0.02")
    for bad in ("0", "-1", "ten", "NaN"):
        with pytest.raises(InvalidAmountError):
            parse_amount(bad)


def test_days_count_and_milestone():
    assert next_days_count(3) == 4
    assert next_days_count(3, override=10) == 10
    assert reached_milestone(40, 40)
    assert reached_milestone(41, 40)
    assert not reached_milestone(39, 40)
    assert not reached_milestone(100, 0)
