"""Job triggers - savings accrual and weekend backfill"""

import logging
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from collectbook.api.dependencies import get_audit_client, get_clock, get_request_id, require_job_key
from collectbook.api.v1.schemas import AccrualResponse, WeekendAdjustmentsResponse
from collectbook.domain.business_date import BusinessClock
from collectbook.domain.events import WEEKEND_ADJUSTMENTS_SHIFTED, accrual_job_event
from collectbook.domain.exceptions import ConfigurationError
from collectbook.domain.models import DomainEvent
from collectbook.infrastructure.clients.audit import AuditClient
from collectbook.infrastructure.database.session import get_db
from collectbook.services.accrual import accrue_savings_once
from collectbook.services.weekend import count_weekend_adjustments, shift_weekend_adjustments

router = APIRouter(dependencies=[Depends(require_job_key)])


@router.post("/jobs/accrue-savings", response_model=AccrualResponse)
def trigger_savings_accrual(
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
    audit_client: AuditClient = Depends(get_audit_client),
):
    """
    Run the daily savings accrual.

    Safe to call any number of times; a second call on the same business day
    inserts nothing. The audit event is sent after the response.
    """
    request_id = get_request_id(request)

    try:
        result = accrue_savings_once(db, clock, source="api")
    except ConfigurationError as e:
        logging.error(f"Accrual misconfigured: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail=str(e))
    except SQLAlchemyError as e:
        logging.error(f"Accrual failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=503, detail="Accrual failed; safe to retry")

    background_tasks.add_task(
        audit_client.notify,
        [accrual_job_event(result, result.increment, result.took_ms, "api")],
        request_id,
    )

    return AccrualResponse(
        inserted_accrual_rows=result.inserted_accrual_rows,
        updated_members=result.updated_members,
        took_ms=round(result.took_ms, 2),
    )


@router.get("/jobs/weekend-adjustments", response_model=WeekendAdjustmentsResponse)
def get_weekend_adjustments(
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
):
    """Count adjustments still dated on a weekend"""
    return WeekendAdjustmentsResponse(**count_weekend_adjustments(db, clock))


@router.post("/jobs/shift-weekend-adjustments", response_model=WeekendAdjustmentsResponse)
def shift_weekend(
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    clock: BusinessClock = Depends(get_clock),
    audit_client: AuditClient = Depends(get_audit_client),
):
    """Move weekend-dated adjustments to the following Monday; returns rows shifted"""
    shifted = shift_weekend_adjustments(db, clock)
    background_tasks.add_task(
        audit_client.notify,
        [DomainEvent(action=WEEKEND_ADJUSTMENTS_SHIFTED, actor_type="SYSTEM", metadata=shifted)],
        get_request_id(request),
    )
    return WeekendAdjustmentsResponse(**shifted)
