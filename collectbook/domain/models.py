"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class Ledger(str, Enum):
    """Which member figure an adjustment moves"""

    BALANCE = "balance"
    SAVINGS = "savings"


class AdjustmentKind(str, Enum):
    """Manual adjustment a collection officer can post"""

    BALANCE_DEDUCT = "BALANCE_DEDUCT"
    BALANCE_INCREASE = "BALANCE_INCREASE"
    SAVINGS_INCREASE = "SAVINGS_INCREASE"
    SAVINGS_WITHDRAW = "SAVINGS_WITHDRAW"

    @property
    def ledger(self) -> Ledger:
        return Ledger.BALANCE if self.value.startswith("BALANCE_") else Ledger.SAVINGS

    @property
    def adjustment_type(self) -> str:
        """Type column value stored on the ledger row (INCREASE, DEDUCT, WITHDRAW)"""
        return self.value.split("_", 1)[1]

    @property
    def sign(self) -> int:
        return 1 if self.adjustment_type == "INCREASE" else -1

    @classmethod
    def from_row(cls, ledger: Ledger, adjustment_type: str) -> "AdjustmentKind":
        return cls(f"{ledger.value.upper()}_{adjustment_type}")


@dataclass
class AccrualResult:
    """Outcome of one savings accrual run"""

    inserted_accrual_rows: int
    updated_members: int
    increment: Decimal = Decimal("0.00")
    took_ms: float = 0.0


@dataclass
class AccrualCandidate:
    """A (member, date) accrual row that may or may not survive the unique constraint"""

    member_id: uuid.UUID
    accrued_for_date: date
    amount: Decimal


@dataclass
class AdjustmentRecord:
    """Ledger row snapshot returned to callers"""

    id: uuid.UUID
    member_id: uuid.UUID
    kind: AdjustmentKind
    amount: Decimal
    before: Decimal
    after: Decimal
    created_at: datetime
    encoded_by: Optional[str] = None


@dataclass
class DomainEvent:
    """Notification for the audit sink; never required for the primary operation"""

    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    actor_id: Optional[str] = None
    actor_type: str = "USER"
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PostedAdjustment:
    adjustment: AdjustmentRecord
    days_count: int
    events: List[DomainEvent] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class ReversedAdjustment:
    adjustment_id: uuid.UUID
    member_id: uuid.UUID
    kind: AdjustmentKind
    amount: Decimal
    events: List[DomainEvent] = field(default_factory=list)


@dataclass
class CollectionEntry:
    """One row of a collection officer's daily sheet"""

    member_id: uuid.UUID
    balance_deduct: Decimal = Decimal("0")
    savings_increase: Decimal = Decimal("0")
    days_count: Optional[int] = None


@dataclass
class EntryError:
    member_id: uuid.UUID
    type: str  # "balance" | "savings" | "not_found"
    message: str


@dataclass
class EntryWarning:
    member_id: uuid.UUID
    message: str


@dataclass
class BatchResult:
    errors: List[EntryError] = field(default_factory=list)
    warnings: List[EntryWarning] = field(default_factory=list)
    events: List[DomainEvent] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors
