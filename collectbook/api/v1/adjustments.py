"""Ledger adjustment endpoints - post, list and reverse"""

import logging
import math
import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from collectbook.api.dependencies import get_actor_id, get_audit_client, get_clock, get_request_id
from collectbook.api.v1.schemas import (
    AdjustmentPage,
    AdjustmentRequest,
    AdjustmentResponse,
    AdjustmentSchema,
    ReversalResponse,
)
from collectbook.domain.business_date import BusinessClock
from collectbook.domain.events import duplicate_attempt_event
from collectbook.domain.exceptions import (
    AdjustmentNotFoundError,
    DuplicateEntryError,
    InvalidAmountError,
    MemberNotFoundError,
    ReversalOrderError,
)
from collectbook.domain.models import AdjustmentRecord, Ledger
from collectbook.infrastructure.clients.audit import AuditClient
from collectbook.infrastructure.database.repositories import AdjustmentRepository
from collectbook.infrastructure.database.session import get_db
from collectbook.infrastructure.observability.logging import log_adjustment, log_reversal
from collectbook.services.adjustments import post_adjustment
from collectbook.services.reversal import reverse_adjustment

router = APIRouter()


def _to_schema(record: AdjustmentRecord) -> AdjustmentSchema:
    return AdjustmentSchema(
        adjustment_id=str(record.id),
        member_id=str(record.member_id),
        kind=record.kind,
        amount=record.amount,
        before=record.before,
        after=record.after,
        created_at=record.created_at,
        encoded_by=record.encoded_by,
    )


@router.post("/adjustments", response_model=AdjustmentResponse, status_code=201)
def create_adjustment(
    request_body: AdjustmentRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
    audit_client: AuditClient = Depends(get_audit_client),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """
    Post a balance or savings adjustment for one member.

    Weekend postings are dated the following Monday. A second adjustment of
    the same kind on the same business day is rejected with 409.
    """
    request_id = get_request_id(request)

    try:
        posted = post_adjustment(
            db,
            clock,
            request_body.member_id,
            request_body.kind,
            request_body.amount,
            actor_id=actor_id,
            days_count_override=request_body.days_count,
            effective_date_override=request_body.effective_date,
        )
    except MemberNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidAmountError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except DuplicateEntryError as e:
        log_adjustment(request_id, str(e.member_id), e.kind.value, "duplicate", str(request_body.amount))
        background_tasks.add_task(
            audit_client.notify,
            [duplicate_attempt_event(e.member_id, e.kind, request_body.amount, e.member_name, actor_id)],
            request_id,
        )
        raise HTTPException(status_code=409, detail=str(e))

    log_adjustment(request_id, str(request_body.member_id), request_body.kind.value, "posted", str(posted.adjustment.amount))
    background_tasks.add_task(audit_client.notify, posted.events, request_id)

    return AdjustmentResponse(
        adjustment=_to_schema(posted.adjustment),
        days_count=posted.days_count,
        warnings=posted.warnings,
    )


@router.get("/adjustments/{ledger}", response_model=AdjustmentPage)
def list_adjustments(
    ledger: Ledger,
    member_id: uuid.UUID = Query(..., description="Member identifier"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
):
    """Paginated adjustment history for a member, newest first"""
    repo = AdjustmentRepository(db, ledger)
    rows, total = repo.list_for_member(member_id, page=page, limit=limit)

    return AdjustmentPage(
        items=[_to_schema(repo.to_record(row)) for row in rows],
        total=total,
        page=page,
        total_pages=math.ceil(total / limit),
    )


@router.delete("/adjustments/{ledger}/{adjustment_id}", response_model=ReversalResponse)
def delete_adjustment(
    ledger: Ledger,
    adjustment_id: str,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    audit_client: AuditClient = Depends(get_audit_client),
    actor_id: Optional[str] = Depends(get_actor_id),
):
    """Reverse an adjustment: undo its effect on the member and delete the row"""
    request_id = get_request_id(request)

    try:
        adjustment_uuid = uuid.UUID(adjustment_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid adjustment ID format")

    try:
        reversed_ = reverse_adjustment(db, ledger, adjustment_uuid, actor_id=actor_id)
    except AdjustmentNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ReversalOrderError as e:
        logging.warning(f"Out-of-order reversal refused: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    log_reversal(request_id, adjustment_id, str(reversed_.member_id), reversed_.kind.value)
    background_tasks.add_task(audit_client.notify, reversed_.events, request_id)

    return ReversalResponse(adjustment_id=adjustment_id)
