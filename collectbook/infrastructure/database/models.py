"""SQLAlchemy ORM models for members and their ledgers"""

import uuid
from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()

Money = Numeric(14, 2, asdecimal=True)


class Member(Base):
    """Borrower/saver enrolled in a lending group"""

    __tablename__ = "members"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, nullable=False, default="")
    balance = Column(Money, nullable=False)
    savings = Column(Money, nullable=False, default=0)
    days_count = Column(Integer, nullable=False, default=0)
    savings_last_accrued_at = Column(Date, nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    balance_adjustments = relationship(
        "BalanceAdjustment", back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )
    savings_adjustments = relationship(
        "SavingsAdjustment", back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )
    accruals = relationship(
        "SavingsAccrual", back_populates="member", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class BalanceAdjustment(Base):
    """Loan balance ledger entry (collections and top-ups)"""

    __tablename__ = "balance_adjustments"
    __table_args__ = (Index("ix_balance_adjustments_member_created", "member_id", "created_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)  # INCREASE | DEDUCT
    amount = Column(Money, nullable=False)
    balance_before = Column(Money, nullable=False)
    balance_after = Column(Money, nullable=False)
    # Effective date; weekend postings are attributed to the following Monday
    created_at = Column(DateTime(timezone=True), nullable=False)
    posted_at = Column(DateTime(timezone=True), nullable=False)
    encoded_by = Column(Text, nullable=True)

    member = relationship("Member", back_populates="balance_adjustments")


class SavingsAdjustment(Base):
    """Manual savings ledger entry (deposits and withdrawals)"""

    __tablename__ = "savings_adjustments"
    __table_args__ = (Index("ix_savings_adjustments_member_created", "member_id", "created_at"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    type = Column(Text, nullable=False)  # INCREASE | WITHDRAW
    amount = Column(Money, nullable=False)
    savings_before = Column(Money, nullable=False)
    savings_after = Column(Money, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    posted_at = Column(DateTime(timezone=True), nullable=False)
    encoded_by = Column(Text, nullable=True)

    member = relationship("Member", back_populates="savings_adjustments")


class SavingsAccrual(Base):
    """Automatic daily savings increment; one row per member per business date"""

    __tablename__ = "savings_accruals"
    __table_args__ = (
        UniqueConstraint("member_id", "accrued_for_date", name="uq_savings_accruals_member_date"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    member_id = Column(Uuid, ForeignKey("members.id", ondelete="CASCADE"), nullable=False)
    accrued_for_date = Column(Date, nullable=False)
    amount = Column(Money, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    member = relationship("Member", back_populates="accruals")
