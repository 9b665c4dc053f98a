"""Idempotent daily savings accrual job"""

import logging
import time
from collections import Counter
from typing import List, Optional

from sqlalchemy.orm import Session

from collectbook.config import settings
from collectbook.domain.accrual import build_accrual_candidates, parse_daily_increment
from collectbook.domain.business_date import BusinessClock
from collectbook.domain.models import AccrualCandidate, AccrualResult
from collectbook.infrastructure.database.repositories import AccrualRepository, MemberRepository
from collectbook.infrastructure.database.session import transaction
from collectbook.infrastructure.observability.logging import log_accrual
from collectbook.infrastructure.observability.metrics import accrual_failures_counter, record_accrual

logger = logging.getLogger(__name__)


def accrue_savings_once(
    db: Session,
    clock: BusinessClock,
    increment: Optional[str] = None,
    source: str = "api",
) -> AccrualResult:
    """
    Credit every member the daily savings increment for each day elapsed since
    their last accrual, exactly once per (member, date).

    Flow:
    1. Validate the increment before touching the store
    2. Build candidate rows for (last accrued, today] per member
    3. Insert them, skipping rows the (member, date) unique constraint rejects
    4. Credit each member n * increment for the n rows actually inserted and
       move savings_last_accrued_at to today

    Steps 2-4 share one transaction, so a failed run changes nothing and any
    number of runs on the same business day converge to the same state.

    Raises:
        ConfigurationError: increment missing, non-numeric or not positive
    """
    amount = parse_daily_increment(settings.savings_daily_increment if increment is None else increment)
    today = clock.today()
    start_time = time.time()

    try:
        with transaction(db):
            members = MemberRepository(db)
            candidates: List[AccrualCandidate] = []
            for member_id, last_accrued, created_at in members.list_accrual_state(today):
                last = last_accrued or clock.to_business_date(created_at)
                candidates.extend(build_accrual_candidates(member_id, last, today, amount))

            inserted = AccrualRepository(db).insert_ignoring_duplicates(candidates, clock.now())

            per_member = Counter(inserted)
            for member_id, days in per_member.items():
                members.credit_accrued_savings(member_id, amount * days, today)
    except Exception:
        accrual_failures_counter.inc()
        logger.exception("Savings accrual rolled back", extra={"source": source})
        raise

    duration_ms = (time.time() - start_time) * 1000
    result = AccrualResult(
        inserted_accrual_rows=len(inserted),
        updated_members=len(per_member),
        increment=amount,
        took_ms=duration_ms,
    )
    record_accrual(result.inserted_accrual_rows, result.updated_members)
    log_accrual(source, result.inserted_accrual_rows, result.updated_members, str(amount), duration_ms)
    return result
