"""Daily savings accrual rules - which rows a member is owed and how much each is worth"""

import uuid
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List

from collectbook.domain.exceptions import ConfigurationError
from collectbook.domain.models import AccrualCandidate
from collectbook.utils.date_utils import dates_after

CENTS = Decimal("0.01")


def parse_daily_increment(raw) -> Decimal:
    """
    Parse the configured daily savings increment.

    Raises:
        ConfigurationError: value is missing, non-numeric, non-finite or not positive
    """
    if raw is None or str(raw).strip() == "":
        raise ConfigurationError("SAVINGS_DAILY_INCREMENT is not set")
    try:
        increment = Decimal(str(raw).strip())
    except InvalidOperation as e:
        raise ConfigurationError(f"Invalid SAVINGS_DAILY_INCREMENT: {raw!r}") from e

    if not increment.is_finite() or increment <= 0:
        raise ConfigurationError(f"Invalid SAVINGS_DAILY_INCREMENT: {raw!r}")

    return increment.quantize(CENTS)


def build_accrual_candidates(
    member_id: uuid.UUID,
    last_accrued: date,
    today: date,
    increment: Decimal,
) -> List[AccrualCandidate]:
    """
    One candidate row per date in (last_accrued, today].

    A member already accrued through today (or later, under clock skew) gets
    no rows, and a member created today starts accruing tomorrow.
    """
    return [
        AccrualCandidate(member_id=member_id, accrued_for_date=day, amount=increment)
        for day in dates_after(last_accrued, today)
    ]
