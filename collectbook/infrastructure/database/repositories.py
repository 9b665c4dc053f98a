"""Data access layer for members, ledger adjustments and savings accruals"""

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Iterator, List, Optional, Tuple

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from collectbook.domain.business_date import as_utc
from collectbook.domain.exceptions import ConfigurationError
from collectbook.domain.models import AccrualCandidate, AdjustmentKind, AdjustmentRecord, Ledger
from collectbook.infrastructure.database.models import (
    BalanceAdjustment,
    Member,
    SavingsAccrual,
    SavingsAdjustment,
)

# Stays under SQLite's bound-parameter limit (5 columns per row)
INSERT_CHUNK_SIZE = 500


class MemberRepository:
    """Repository for members"""

    def __init__(self, db: Session):
        self.db = db

    def create_member(
        self,
        first_name: str,
        last_name: str,
        balance: Decimal,
        created_at: datetime,
        enrolled_on: date,
        savings: Decimal = Decimal("0.00"),
        days_count: int = 0,
    ) -> Member:
        """Enroll a member; accrual starts the day after `enrolled_on`"""
        member = Member(
            first_name=first_name,
            last_name=last_name,
            balance=balance,
            savings=savings,
            days_count=days_count,
            savings_last_accrued_at=enrolled_on,
            created_at=as_utc(created_at),
        )
        self.db.add(member)
        self.db.flush()
        return member

    def get(self, member_id: uuid.UUID) -> Optional[Member]:
        return self.db.get(Member, member_id)

    def get_for_update(self, member_id: uuid.UUID) -> Optional[Member]:
        """Load a member with a row lock held until the transaction ends"""
        return self.db.execute(
            select(Member)
            .where(Member.id == member_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def list_accrual_state(self, today: date) -> List[Tuple[uuid.UUID, Optional[date], datetime]]:
        """(id, savings_last_accrued_at, created_at) for members not yet accrued through today"""
        rows = self.db.execute(
            select(Member.id, Member.savings_last_accrued_at, Member.created_at).where(
                (Member.savings_last_accrued_at.is_(None)) | (Member.savings_last_accrued_at < today)
            )
        ).all()
        return [tuple(row) for row in rows]

    def credit_accrued_savings(self, member_id: uuid.UUID, amount: Decimal, today: date) -> None:
        """Add accrued savings and advance the accrual marker without moving it backwards"""
        self.db.execute(
            update(Member)
            .where(Member.id == member_id)
            .values(
                savings=Member.savings + amount,
                savings_last_accrued_at=case(
                    (Member.savings_last_accrued_at > today, Member.savings_last_accrued_at),
                    else_=today,
                ),
            )
        )

    def increment_ledger(self, member_id: uuid.UUID, ledger: Ledger, delta: Decimal, undo_collection_day: bool) -> None:
        """Atomic in-place increment of balance or savings, optionally dropping one collection day"""
        column = Member.balance if ledger is Ledger.BALANCE else Member.savings
        values = {column.key: column + delta}
        if undo_collection_day:
            values["days_count"] = case((Member.days_count > 0, Member.days_count - 1), else_=0)
        self.db.execute(update(Member).where(Member.id == member_id).values(**values))


class AdjustmentRepository:
    """Repository for one ledger's adjustment rows (balance or savings)"""

    def __init__(self, db: Session, ledger: Ledger):
        self.db = db
        self.ledger = ledger
        if ledger is Ledger.BALANCE:
            self.model = BalanceAdjustment
            self.before_field, self.after_field = "balance_before", "balance_after"
        else:
            self.model = SavingsAdjustment
            self.before_field, self.after_field = "savings_before", "savings_after"

    def create_adjustment(
        self,
        member_id: uuid.UUID,
        kind: AdjustmentKind,
        amount: Decimal,
        before: Decimal,
        after: Decimal,
        created_at: datetime,
        posted_at: datetime,
        encoded_by: Optional[str] = None,
    ):
        """Persist a ledger row; timestamps are stored in UTC"""
        row = self.model(
            member_id=member_id,
            type=kind.adjustment_type,
            amount=amount,
            created_at=as_utc(created_at),
            posted_at=as_utc(posted_at),
            encoded_by=encoded_by,
            **{self.before_field: before, self.after_field: after},
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def exists_between(self, member_id: uuid.UUID, kind: AdjustmentKind, start: datetime, end: datetime) -> bool:
        """Is there an adjustment of this kind for the member effective in [start, end)"""
        found = self.db.execute(
            select(self.model.id)
            .where(
                self.model.member_id == member_id,
                self.model.type == kind.adjustment_type,
                self.model.created_at >= as_utc(start),
                self.model.created_at < as_utc(end),
            )
            .limit(1)
        ).first()
        return found is not None

    def get(self, adjustment_id: uuid.UUID):
        return self.db.get(self.model, adjustment_id)

    def get_current(self, adjustment_id: uuid.UUID):
        """Re-read a row from the store, bypassing the identity map; None if it is gone"""
        return self.db.execute(
            select(self.model)
            .where(self.model.id == adjustment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def latest_for_member(self, member_id: uuid.UUID):
        """Most recently posted row on this ledger for a member"""
        return self.db.execute(
            select(self.model)
            .where(self.model.member_id == member_id)
            .order_by(self.model.posted_at.desc(), self.model.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def delete(self, row) -> bool:
        """Delete a row; False when nothing matched"""
        result = self.db.execute(delete(self.model).where(self.model.id == row.id))
        return result.rowcount == 1

    def list_for_member(self, member_id: uuid.UUID, page: int = 1, limit: int = 10) -> Tuple[list, int]:
        """Page of a member's adjustments, newest effective date first, plus the total count"""
        total = self.db.execute(
            select(func.count()).select_from(self.model).where(self.model.member_id == member_id)
        ).scalar_one()
        items = (
            self.db.execute(
                select(self.model)
                .where(self.model.member_id == member_id)
                .order_by(self.model.created_at.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            )
            .scalars()
            .all()
        )
        return items, total

    def iter_all(self) -> Iterator:
        return iter(self.db.execute(select(self.model)).scalars().all())

    def to_record(self, row) -> AdjustmentRecord:
        return AdjustmentRecord(
            id=row.id,
            member_id=row.member_id,
            kind=AdjustmentKind.from_row(self.ledger, row.type),
            amount=row.amount,
            before=getattr(row, self.before_field),
            after=getattr(row, self.after_field),
            created_at=as_utc(row.created_at),
            encoded_by=row.encoded_by,
        )


class AccrualRepository:
    """Repository for daily savings accrual rows"""

    def __init__(self, db: Session):
        self.db = db

    def _insert(self):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(SavingsAccrual)
        if dialect == "sqlite":
            return sqlite.insert(SavingsAccrual)
        raise ConfigurationError(f"Idempotent accrual insert not supported on {dialect}")

    def insert_ignoring_duplicates(self, candidates: List[AccrualCandidate], created_at: datetime) -> List[uuid.UUID]:
        """
        Bulk insert accrual rows, skipping any (member, date) that already exists.

        Returns:
            member_id of every row actually inserted (one entry per row)
        """
        inserted: List[uuid.UUID] = []
        stamp = as_utc(created_at)
        for start in range(0, len(candidates), INSERT_CHUNK_SIZE):
            chunk = candidates[start:start + INSERT_CHUNK_SIZE]
            stmt = (
                self._insert()
                .values(
                    [
                        {
                            "id": uuid.uuid4(),
                            "member_id": c.member_id,
                            "accrued_for_date": c.accrued_for_date,
                            "amount": c.amount,
                            "created_at": stamp,
                        }
                        for c in chunk
                    ]
                )
                .on_conflict_do_nothing(index_elements=["member_id", "accrued_for_date"])
                .returning(SavingsAccrual.member_id)
            )
            inserted.extend(self.db.execute(stmt).scalars().all())
        return inserted

    def list_for_member(self, member_id: uuid.UUID) -> List[SavingsAccrual]:
        return (
            self.db.execute(
                select(SavingsAccrual)
                .where(SavingsAccrual.member_id == member_id)
                .order_by(SavingsAccrual.accrued_for_date)
            )
            .scalars()
            .all()
        )
