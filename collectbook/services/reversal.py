"""Reversal of posted ledger adjustments"""

import uuid
from typing import Optional

from sqlalchemy.orm import Session

from collectbook.domain.adjustments import reversal_delta
from collectbook.domain.events import REVERSED
from collectbook.domain.exceptions import AdjustmentNotFoundError, ReversalOrderError
from collectbook.domain.models import AdjustmentKind, DomainEvent, Ledger, ReversedAdjustment
from collectbook.infrastructure.database.repositories import AdjustmentRepository, MemberRepository
from collectbook.infrastructure.database.session import transaction
from collectbook.infrastructure.observability.metrics import reversal_counter


def reverse_adjustment(db: Session, ledger: Ledger, adjustment_id: uuid.UUID, actor_id: Optional[str] = None) -> ReversedAdjustment:
    """
    Undo an adjustment as if it had never been posted.

    Only the member's latest adjustment on that ledger can be reversed, which
    keeps every remaining row's before/after snapshots consistent with the
    current figures. The reverse amount is applied as an in-place increment so
    accruals credited since the posting are preserved. A reversed DEDUCT also
    gives back one collection day (never below zero). The member update and
    the row delete commit together.

    Raises:
        AdjustmentNotFoundError: no such adjustment on this ledger
        ReversalOrderError: a newer adjustment exists for the member on this ledger
    """
    ledger = Ledger(ledger)
    adjustments = AdjustmentRepository(db, ledger)

    with transaction(db):
        row = adjustments.get(adjustment_id)
        if row is None:
            raise AdjustmentNotFoundError(adjustment_id)

        # Serialize against postings and reversals for the same member
        MemberRepository(db).get_for_update(row.member_id)

        # A concurrent reversal may have removed the row while we waited
        row = adjustments.get_current(adjustment_id)
        if row is None:
            raise AdjustmentNotFoundError(adjustment_id)

        latest = adjustments.latest_for_member(row.member_id)
        if latest is not None and latest.id != row.id:
            raise ReversalOrderError(
                f"Adjustment {adjustment_id} is not the latest {ledger.value} adjustment for this member; "
                f"reverse {latest.id} first"
            )

        kind = AdjustmentKind.from_row(ledger, row.type)
        amount = row.amount
        member_id = row.member_id

        MemberRepository(db).increment_ledger(
            member_id,
            ledger,
            reversal_delta(kind, amount),
            undo_collection_day=kind is AdjustmentKind.BALANCE_DEDUCT,
        )
        if not adjustments.delete(row):
            raise AdjustmentNotFoundError(adjustment_id)

    reversal_counter.labels(ledger=ledger.value).inc()
    return ReversedAdjustment(
        adjustment_id=adjustment_id,
        member_id=member_id,
        kind=kind,
        amount=amount,
        events=[
            DomainEvent(
                action=REVERSED[ledger],
                entity_type="Member",
                entity_id=str(member_id),
                actor_id=actor_id,
                metadata={"adjustment_id": str(adjustment_id), "kind": kind.value, "amount": str(amount)},
            )
        ],
    )
