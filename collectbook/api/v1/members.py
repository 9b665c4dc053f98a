"""Member enrollment, lookup and the daily collection sheet"""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from collectbook.api.dependencies import get_actor_id, get_audit_client, get_clock, get_request_id
from collectbook.api.v1.schemas import (
    BulkUpdateRequest,
    BulkUpdateResponse,
    EntryErrorSchema,
    EntryWarningSchema,
    MemberCreateRequest,
    MemberResponse,
)
from collectbook.domain.business_date import BusinessClock, as_utc
from collectbook.domain.models import CollectionEntry
from collectbook.infrastructure.clients.audit import AuditClient
from collectbook.infrastructure.database.models import Member
from collectbook.infrastructure.database.repositories import MemberRepository
from collectbook.infrastructure.database.session import get_db, transaction
from collectbook.services.adjustments import apply_collection_entries

router = APIRouter()


def _to_response(member: Member) -> MemberResponse:
    return MemberResponse(
        member_id=str(member.id),
        first_name=member.first_name,
        last_name=member.last_name,
        balance=member.balance,
        savings=member.savings,
        days_count=member.days_count,
        savings_last_accrued_at=member.savings_last_accrued_at,
        created_at=as_utc(member.created_at),
    )


@router.post("/members", response_model=MemberResponse, status_code=201)
def create_member(
    request_body: MemberCreateRequest,
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
):
    """Enroll a member; daily savings accrual starts the next business-timezone day"""
    with transaction(db):
        member = MemberRepository(db).create_member(
            first_name=request_body.first_name,
            last_name=request_body.last_name,
            balance=request_body.balance,
            savings=request_body.savings,
            created_at=clock.now(),
            enrolled_on=clock.today(),
        )
    return _to_response(member)


@router.get("/members/{member_id}", response_model=MemberResponse)
def get_member(member_id: str, db: Session = Depends(get_db)):
    try:
        member_uuid = uuid.UUID(member_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid member ID format")

    member = MemberRepository(db).get(member_uuid)
    if not member:
        raise HTTPException(status_code=404, detail="Member not found")

    return _to_response(member)


@router.post("/members/bulk-update", response_model=BulkUpdateResponse)
def bulk_update_members(
    request_body: BulkUpdateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
    audit_client: AuditClient = Depends(get_audit_client),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Apply the collection sheet.

    Every member is handled independently; duplicates and missing members
    come back as per-row errors, milestone crossings as warnings.
    """
    entries = [
        CollectionEntry(
            member_id=update.member_id,
            balance_deduct=update.balance_deduct,
            savings_increase=update.savings_increase,
            days_count=update.days_count,
        )
        for update in request_body.updates
    ]
    result = apply_collection_entries(db, clock, entries, actor_id=actor_id)

    background_tasks.add_task(audit_client.notify, result.events, get_request_id(request))

    return BulkUpdateResponse(
        success=result.success,
        errors=[EntryErrorSchema(member_id=str(e.member_id), type=e.type, message=e.message) for e in result.errors],
        warnings=[EntryWarningSchema(member_id=str(w.member_id), message=w.message) for w in result.warnings],
    )
