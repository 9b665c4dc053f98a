"""Domain events reported to the audit sink after commit"""

from decimal import Decimal
from typing import Optional

from collectbook.domain.models import AccrualResult, AdjustmentKind, DomainEvent, Ledger

SAVINGS_ACCRUE_JOB = "SAVINGS_ACCRUE_JOB"
MEMBER_REACHED_DAYS_MILESTONE = "MEMBER_REACHED_DAYS_MILESTONE"
MEMBER_BULK_UPDATE = "MEMBER_BULK_UPDATE"
ADJUSTMENT_POSTED = "ADJUSTMENT_POSTED"
WEEKEND_ADJUSTMENTS_SHIFTED = "WEEKEND_ADJUSTMENTS_SHIFTED"

DUPLICATE_ATTEMPT = {
    Ledger.BALANCE: "ATTEMPT_MULTIPLE_BALANCE_UPDATE",
    Ledger.SAVINGS: "ATTEMPT_MULTIPLE_SAVINGS_UPDATE",
}

REVERSED = {
    Ledger.BALANCE: "BALANCE_ADJUSTMENT_REVERSED",
    Ledger.SAVINGS: "SAVINGS_ADJUSTMENT_REVERSED",
}


def accrual_job_event(result: AccrualResult, increment: Decimal, took_ms: float, source: str) -> DomainEvent:
    return DomainEvent(
        action=SAVINGS_ACCRUE_JOB,
        actor_type="SYSTEM",
        metadata={
            "inserted_accrual_rows": result.inserted_accrual_rows,
            "updated_members": result.updated_members,
            "increment": str(increment),
            "took_ms": round(took_ms, 2),
            "source": source,
        },
    )


def duplicate_attempt_event(
    member_id, kind: AdjustmentKind, amount: Decimal, member_name: str, actor_id: Optional[str]
) -> DomainEvent:
    return DomainEvent(
        action=DUPLICATE_ATTEMPT[kind.ledger],
        entity_type="Member",
        entity_id=str(member_id),
        actor_id=actor_id,
        metadata={"attempt": str(amount), "kind": kind.value, "member_name": member_name},
    )


def milestone_event(member_id, days_count: int, threshold: int, actor_id: Optional[str]) -> DomainEvent:
    return DomainEvent(
        action=MEMBER_REACHED_DAYS_MILESTONE,
        entity_type="Member",
        entity_id=str(member_id),
        actor_id=actor_id,
        metadata={"days_count": days_count, "threshold": threshold},
    )
