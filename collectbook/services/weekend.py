"""Backfill that moves weekend-dated adjustments to the following Monday"""

import logging
from typing import Dict

from sqlalchemy.orm import Session

from collectbook.domain.business_date import BusinessClock, as_utc
from collectbook.domain.models import Ledger
from collectbook.infrastructure.database.repositories import AdjustmentRepository
from collectbook.infrastructure.database.session import transaction

logger = logging.getLogger(__name__)


def count_weekend_adjustments(db: Session, clock: BusinessClock) -> Dict[str, int]:
    """Rows per ledger whose effective date falls on a business-timezone weekend"""
    return {
        ledger.value: sum(1 for row in AdjustmentRepository(db, ledger).iter_all() if clock.is_weekend(row.created_at))
        for ledger in Ledger
    }


def shift_weekend_adjustments(db: Session, clock: BusinessClock) -> Dict[str, int]:
    """
    Re-date weekend adjustments to Monday (Saturday +2 days, Sunday +1 day).

    Runs in one transaction. Shifted rows land on a weekday, so running it
    again updates nothing.
    """
    shifted = {}
    with transaction(db):
        for ledger in Ledger:
            count = 0
            for row in AdjustmentRepository(db, ledger).iter_all():
                if clock.is_weekend(row.created_at):
                    row.created_at = as_utc(clock.shift_off_weekend(as_utc(row.created_at)))
                    count += 1
            shifted[ledger.value] = count

    logger.info("Weekend adjustments shifted", extra={"step": "weekend_backfill", **shifted})
    return shifted
