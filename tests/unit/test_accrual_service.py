"""Unit tests for the savings accrual job against SQLite"""

import uuid
import pytest
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from collectbook.domain.exceptions import ConfigurationError
from collectbook.domain.models import AccrualCandidate
from collectbook.infrastructure.database.models import SavingsAccrual
from collectbook.infrastructure.database.repositories import AccrualRepository
from collectbook.services.accrual import accrue_savings_once

TODAY = date(2026, 3, 4)


def accrual_rows(db) -> int:
    return db.execute(select(func.count()).select_from(SavingsAccrual)).scalar_one()


def test_accrues_each_elapsed_day(db, clock, make_member):
    """Three days since last accrual -> three rows and 3 x increment in one call"""
    member = make_member(savings="100.00", days_ago=3)

    result = accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert result.inserted_accrual_rows == 3
    assert result.updated_members == 1
    assert member.savings == Decimal("160.00")
    assert member.savings_last_accrued_at == TODAY
    dates = [row.accrued_for_date for row in AccrualRepository(db).list_for_member(member.id)]
    assert dates == [date(2026, 3, 2), date(2026, 3, 3), TODAY]


def test_repeated_runs_same_day_are_idempotent(db, clock, make_member):
    member = make_member(savings="100.00", days_ago=2)

    first = accrue_savings_once(db, clock, increment="20.00")
    db.refresh(member)
    after_first = (member.savings, member.savings_last_accrued_at)

    for _ in range(3):
        again = accrue_savings_once(db, clock, increment="20.00")
        assert again.inserted_accrual_rows == 0
        assert again.updated_members == 0

    db.refresh(member)
    assert first.inserted_accrual_rows == 2
    assert (member.savings, member.savings_last_accrued_at) == after_first
    assert accrual_rows(db) == 2


def test_new_member_accrues_from_next_day(db, clock, wallclock, make_member):
    member = make_member(savings="0.00", days_ago=0)

    assert accrue_savings_once(db, clock, increment="20.00").inserted_accrual_rows == 0

    wallclock.advance(days=1)
    result = accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert result.inserted_accrual_rows == 1
    assert member.savings == Decimal("20.00")
    assert member.savings_last_accrued_at == TODAY + timedelta(days=1)


def test_member_ahead_of_today_accrues_nothing(db, clock, make_member):
    """Clock skew: marker already past today"""
    member = make_member(savings="50.00")
    member.savings_last_accrued_at = TODAY + timedelta(days=2)
    db.commit()

    result = accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert result.inserted_accrual_rows == 0
    assert member.savings == Decimal("50.00")
    assert member.savings_last_accrued_at == TODAY + timedelta(days=2)


def test_missing_marker_falls_back_to_creation_date(db, clock, make_member):
    member = make_member(savings="0.00", days_ago=2)
    member.savings_last_accrued_at = None
    db.commit()

    result = accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert result.inserted_accrual_rows == 2
    assert member.savings == Decimal("40.00")


def test_existing_rows_are_skipped_not_double_credited(db, clock, make_member):
    """A row already present for a date (earlier partial run) is neither re-inserted nor re-credited"""
    member = make_member(savings="0.00", days_ago=3)
    db.add(SavingsAccrual(member_id=member.id, accrued_for_date=date(2026, 3, 2), amount=Decimal("20.00")))
    db.commit()

    result = accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert result.inserted_accrual_rows == 2
    assert member.savings == Decimal("40.00")
    assert accrual_rows(db) == 3


def test_many_members_one_run(db, clock, make_member):
    members = [make_member(savings="0.00", days_ago=n, first_name=f"M{n}") for n in range(4)]

    result = accrue_savings_once(db, clock, increment="20.00")

    assert result.inserted_accrual_rows == 0 + 1 + 2 + 3
    assert result.updated_members == 3
    for n, member in enumerate(members):
        db.refresh(member)
        assert member.savings == Decimal("20.00") * n


@pytest.mark.parametrize("bad", ["", "abc", "0", "-20"])
def test_bad_increment_fails_before_touching_store(db, clock, make_member, bad):
    member = make_member(savings="100.00", days_ago=3)

    with pytest.raises(ConfigurationError):
        accrue_savings_once(db, clock, increment=bad)

    db.refresh(member)
    assert member.savings == Decimal("100.00")
    assert accrual_rows(db) == 0


def test_unsupported_dialect_is_configuration_error(db):
    repo = AccrualRepository(db)
    candidate = AccrualCandidate(member_id=uuid.uuid4(), accrued_for_date=TODAY, amount=Decimal("20.00"))
    mysql_bind = SimpleNamespace(dialect=SimpleNamespace(name="mysql"))

    with patch.object(db, "get_bind", return_value=mysql_bind):
        with pytest.raises(ConfigurationError):
            repo.insert_ignoring_duplicates([candidate], datetime(2026, 3, 4, 2, 0, tzinfo=timezone.utc))


def test_failure_mid_run_rolls_back_everything(db, clock, make_member):
    member = make_member(savings="100.00", days_ago=3)

    with patch(
        "collectbook.infrastructure.database.repositories.MemberRepository.credit_accrued_savings",
        side_effect=SQLAlchemyError("connection lost"),
    ):
        with pytest.raises(SQLAlchemyError):
            accrue_savings_once(db, clock, increment="20.00")

    db.refresh(member)
    assert member.savings == Decimal("100.00")
    assert accrual_rows(db) == 0

    # Retrying after the failure converges to the normal result
    assert accrue_savings_once(db, clock, increment="20.00").inserted_accrual_rows == 3
