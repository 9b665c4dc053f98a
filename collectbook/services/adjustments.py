"""Posting protocol for balance and savings adjustments"""

import logging
import uuid
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from collectbook.config import settings
from collectbook.domain.adjustments import apply_adjustment, next_days_count, parse_amount, reached_milestone
from collectbook.domain.business_date import BusinessClock
from collectbook.domain.events import (
    ADJUSTMENT_POSTED,
    MEMBER_BULK_UPDATE,
    duplicate_attempt_event,
    milestone_event,
)
from collectbook.domain.exceptions import DuplicateEntryError, MemberNotFoundError
from collectbook.domain.models import (
    AdjustmentKind,
    BatchResult,
    CollectionEntry,
    DomainEvent,
    EntryError,
    EntryWarning,
    Ledger,
    PostedAdjustment,
)
from collectbook.infrastructure.database.models import Member
from collectbook.infrastructure.database.repositories import AdjustmentRepository, MemberRepository
from collectbook.infrastructure.database.session import transaction
from collectbook.infrastructure.observability.metrics import days_milestone_counter, record_adjustment

logger = logging.getLogger(__name__)


def _post_locked(
    db: Session,
    clock: BusinessClock,
    member: Member,
    kind: AdjustmentKind,
    amount: Decimal,
    actor_id: Optional[str],
    days_count_override: Optional[int],
    effective_date_override: Optional[date],
    milestone: int,
) -> PostedAdjustment:
    """Post against a member row already locked by the caller's transaction"""
    adjustments = AdjustmentRepository(db, kind.ledger)
    effective = clock.effective_timestamp(effective_date_override)
    effective_day = clock.to_business_date(effective)

    # One entry per member, kind and effective business day
    if adjustments.exists_between(
        member.id, kind, clock.start_of(effective_day), clock.start_of(effective_day + timedelta(days=1))
    ):
        record_adjustment(kind.value, duplicate=True)
        raise DuplicateEntryError(member.id, kind, member.full_name)

    field = "balance" if kind.ledger is Ledger.BALANCE else "savings"
    before = getattr(member, field)
    after = apply_adjustment(before, kind, amount)
    setattr(member, field, after)

    events = []
    warnings = []
    if kind is AdjustmentKind.BALANCE_DEDUCT:
        member.days_count = next_days_count(member.days_count, days_count_override)
        if reached_milestone(member.days_count, milestone):
            days_milestone_counter.inc()
            warnings.append(f"{member.full_name} has reached {member.days_count} days.")
            events.append(milestone_event(member.id, member.days_count, milestone, actor_id))

    row = adjustments.create_adjustment(
        member_id=member.id,
        kind=kind,
        amount=amount,
        before=before,
        after=after,
        created_at=effective,
        posted_at=clock.now(),
        encoded_by=actor_id,
    )
    record = adjustments.to_record(row)
    events.insert(
        0,
        DomainEvent(
            action=ADJUSTMENT_POSTED,
            entity_type="Member",
            entity_id=str(member.id),
            actor_id=actor_id,
            metadata={"adjustment_id": str(record.id), "kind": kind.value, "amount": str(amount)},
        ),
    )
    record_adjustment(kind.value)
    return PostedAdjustment(adjustment=record, days_count=member.days_count, events=events, warnings=warnings)


def post_adjustment(
    db: Session,
    clock: BusinessClock,
    member_id: uuid.UUID,
    kind: AdjustmentKind,
    amount,
    *,
    actor_id: Optional[str] = None,
    days_count_override: Optional[int] = None,
    effective_date_override: Optional[date] = None,
    milestone: Optional[int] = None,
) -> PostedAdjustment:
    """
    Post one adjustment in its own transaction.

    Raises:
        InvalidAmountError: amount is not a positive decimal
        MemberNotFoundError: no such member (nothing written)
        DuplicateEntryError: same kind already posted for the effective business day (nothing written)
    """
    kind = AdjustmentKind(kind)
    amount = parse_amount(amount)
    threshold = settings.days_count_milestone if milestone is None else milestone

    with transaction(db):
        member = MemberRepository(db).get_for_update(member_id)
        if member is None:
            raise MemberNotFoundError(member_id)
        return _post_locked(
            db, clock, member, kind, amount, actor_id, days_count_override, effective_date_override, threshold
        )


def apply_collection_entries(
    db: Session,
    clock: BusinessClock,
    entries: Iterable[CollectionEntry],
    *,
    actor_id: Optional[str] = None,
    milestone: Optional[int] = None,
) -> BatchResult:
    """
    Apply a collection officer's daily sheet.

    Each member is resolved in its own transaction. Duplicates, missing
    members and store failures become per-member errors in the result and
    never stop the remaining entries.
    """
    threshold = settings.days_count_milestone if milestone is None else milestone
    result = BatchResult()

    for entry in entries:
        requested = [
            (AdjustmentKind.BALANCE_DEDUCT, entry.balance_deduct),
            (AdjustmentKind.SAVINGS_INCREASE, entry.savings_increase),
        ]
        requested = [(kind, parse_amount(value)) for kind, value in requested if value and value > 0]
        if not requested and entry.days_count is None:
            continue

        member_events = []
        member_errors = []
        member_warnings = []
        try:
            with transaction(db):
                member = MemberRepository(db).get_for_update(entry.member_id)
                if member is None:
                    raise MemberNotFoundError(entry.member_id)

                deducted = False
                for kind, amount in requested:
                    override = entry.days_count if kind is AdjustmentKind.BALANCE_DEDUCT else None
                    try:
                        posted = _post_locked(
                            db, clock, member, kind, amount, actor_id, override, None, threshold
                        )
                    except DuplicateEntryError as e:
                        member_errors.append(EntryError(member_id=member.id, type=kind.ledger.value, message=str(e)))
                        member_events.append(duplicate_attempt_event(member.id, kind, amount, member.full_name, actor_id))
                        continue

                    deducted = deducted or kind is AdjustmentKind.BALANCE_DEDUCT
                    member_events.extend(posted.events)
                    member_warnings.extend(EntryWarning(member_id=member.id, message=w) for w in posted.warnings)

                if entry.days_count is not None and not deducted:
                    member.days_count = entry.days_count

        except MemberNotFoundError as e:
            result.errors.append(EntryError(member_id=entry.member_id, type="not_found", message=str(e)))
            continue
        except SQLAlchemyError:
            logger.exception("Collection entry rolled back", extra={"member_id": str(entry.member_id)})
            result.errors.append(
                EntryError(member_id=entry.member_id, type="failed", message="Update failed; please retry.")
            )
            continue

        result.errors.extend(member_errors)
        result.warnings.extend(member_warnings)
        result.events.extend(member_events)
        if not member_errors:
            result.events.append(
                DomainEvent(
                    action=MEMBER_BULK_UPDATE,
                    entity_type="Member",
                    entity_id=str(entry.member_id),
                    actor_id=actor_id,
                    metadata={
                        "balance_deduct": str(entry.balance_deduct),
                        "savings_increase": str(entry.savings_increase),
                        "days_count": entry.days_count,
                    },
                )
            )

    return result
