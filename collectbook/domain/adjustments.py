"""Adjustment arithmetic for balance and savings ledgers"""

from decimal import Decimal, InvalidOperation
from typing import Optional

from collectbook.domain.exceptions import InvalidAmountError
from collectbook.domain.models import AdjustmentKind

CENTS = Decimal("0.01")


def parse_amount(raw) -> Decimal:
    """Coerce an amount to a positive 2dp Decimal or raise InvalidAmountError"""
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise InvalidAmountError(f"Invalid amount: {raw!r}") from e

    if not amount.is_finite() or amount <= 0:
        raise InvalidAmountError(f"Amount must be positive, got {raw!r}")

    return amount.quantize(CENTS)


def apply_adjustment(before: Decimal, kind: AdjustmentKind, amount: Decimal) -> Decimal:
    """
    Value after posting.

    INCREASE adds; DEDUCT and WITHDRAW subtract. A balance may go negative
    (overpayment), savings are not floored either.
    """
    return before + kind.sign * amount


def reversal_delta(kind: AdjustmentKind, amount: Decimal) -> Decimal:
    """Increment that undoes a posted adjustment"""
    return -kind.sign * amount


def next_days_count(current: int, override: Optional[int] = None) -> int:
    """Consecutive collection days after a balance deduction"""
    if override is not None:
        return override
    return current + 1


def reached_milestone(days_count: int, threshold: int) -> bool:
    return threshold > 0 and days_count >= threshold
