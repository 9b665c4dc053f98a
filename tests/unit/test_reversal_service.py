"""Unit tests for reversing posted adjustments"""

import uuid
import pytest
from decimal import Decimal
from collectbook.domain.exceptions import AdjustmentNotFoundError, ReversalOrderError
from collectbook.domain.models import AdjustmentKind, Ledger
from collectbook.infrastructure.database.repositories import AdjustmentRepository
from collectbook.services.accrual import accrue_savings_once
from collectbook.services.adjustments import post_adjustment
from collectbook.services.reversal import reverse_adjustment


def test_reversing_deduct_restores_balance_and_days(db, clock, make_member):
    member = make_member(balance="5000.00", days_count=0)
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "500")

    reversed_ = reverse_adjustment(db, Ledger.BALANCE, posted.adjustment.id, actor_id="officer-1")

    db.refresh(member)
    assert member.balance == Decimal("5000.00")
    assert member.days_count == 0
    assert AdjustmentRepository(db, Ledger.BALANCE).get(posted.adjustment.id) is None
    assert reversed_.kind is AdjustmentKind.BALANCE_DEDUCT
    assert reversed_.amount == Decimal("500.00")
    assert [e.action for e in reversed_.events] == ["BALANCE_ADJUSTMENT_REVERSED"]


def test_reversal_allows_reposting_same_day(db, clock, wallclock, make_member):
    member = make_member(balance="5000.00")
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "500")
    reverse_adjustment(db, Ledger.BALANCE, posted.adjustment.id)

    wallclock.advance(minutes=5)
    post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "450")

    db.refresh(member)
    assert member.balance == Decimal("4550.00")
    assert member.days_count == 1


def test_days_count_never_goes_negative(db, clock, make_member):
    """An override to 0 followed by a reversal leaves the counter at 0"""
    member = make_member(days_count=5)
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "100", days_count_override=0)

    reverse_adjustment(db, Ledger.BALANCE, posted.adjustment.id)

    db.refresh(member)
    assert member.days_count == 0


def test_reversing_increase_keeps_days_count(db, clock, make_member):
    member = make_member(balance="5000.00", days_count=3)
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_INCREASE, "250")

    reverse_adjustment(db, Ledger.BALANCE, posted.adjustment.id)

    db.refresh(member)
    assert member.balance == Decimal("5000.00")
    assert member.days_count == 3


def test_only_latest_adjustment_can_be_reversed(db, clock, wallclock, make_member):
    member = make_member(balance="5000.00")
    first = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "500")
    wallclock.advance(minutes=10)
    second = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_INCREASE, "200")

    with pytest.raises(ReversalOrderError):
        reverse_adjustment(db, Ledger.BALANCE, first.adjustment.id)

    db.refresh(member)
    assert member.balance == Decimal("4700.00")

    reverse_adjustment(db, Ledger.BALANCE, second.adjustment.id)
    reverse_adjustment(db, Ledger.BALANCE, first.adjustment.id)

    db.refresh(member)
    assert member.balance == Decimal("5000.00")
    assert member.days_count == 0


def test_ledgers_are_reversed_independently(db, clock, wallclock, make_member):
    member = make_member(balance="5000.00", savings="100.00")
    deduct = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "500")
    wallclock.advance(minutes=1)
    post_adjustment(db, clock, member.id, AdjustmentKind.SAVINGS_INCREASE, "20")

    reverse_adjustment(db, Ledger.BALANCE, deduct.adjustment.id)

    db.refresh(member)
    assert member.balance == Decimal("5000.00")
    assert member.savings == Decimal("120.00")


def test_savings_reversal_preserves_later_accruals(db, clock, wallclock, make_member):
    member = make_member(savings="100.00")
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.SAVINGS_INCREASE, "50")

    wallclock.advance(days=2)
    accrue_savings_once(db, clock, increment="20.00")
    db.refresh(member)
    assert member.savings == Decimal("190.00")

    reverse_adjustment(db, Ledger.SAVINGS, posted.adjustment.id)

    db.refresh(member)
    assert member.savings == Decimal("140.00")


def test_unknown_adjustment_is_not_found(db):
    with pytest.raises(AdjustmentNotFoundError):
        reverse_adjustment(db, Ledger.SAVINGS, uuid.uuid4())


def test_wrong_ledger_is_not_found(db, clock, make_member):
    member = make_member()
    posted = post_adjustment(db, clock, member.id, AdjustmentKind.BALANCE_DEDUCT, "100")

    with pytest.raises(AdjustmentNotFoundError):
        reverse_adjustment(db, Ledger.SAVINGS, posted.adjustment.id)
