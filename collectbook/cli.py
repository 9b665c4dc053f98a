"""
Command line entry points for scheduled and one-off jobs.

Usage:
    collectbook accrue-savings
    collectbook check-weekend
    collectbook shift-weekend-adjustments
"""

import argparse
import asyncio
import logging
import sys

from collectbook.config import settings
from collectbook.domain.business_date import BusinessClock
from collectbook.domain.events import accrual_job_event
from collectbook.domain.exceptions import DomainException
from collectbook.infrastructure.clients.audit import AuditClient
from collectbook.infrastructure.database.session import SessionLocal
from collectbook.infrastructure.observability.logging import setup_logging
from collectbook.services.accrual import accrue_savings_once
from collectbook.services.weekend import count_weekend_adjustments, shift_weekend_adjustments


def _accrue(db, clock) -> None:
    result = accrue_savings_once(db, clock, source="cli")
    asyncio.run(AuditClient().notify([accrual_job_event(result, result.increment, result.took_ms, "cli")]))
    print(
        f"[collectbook] accrue-savings inserted rows: {result.inserted_accrual_rows}, "
        f"updated members: {result.updated_members}"
    )


def _check_weekend(db, clock) -> None:
    counts = count_weekend_adjustments(db, clock)
    print(f"Remaining weekend balance adjustments: {counts['balance']}")
    print(f"Remaining weekend savings adjustments: {counts['savings']}")


def _shift_weekend(db, clock) -> None:
    shifted = shift_weekend_adjustments(db, clock)
    print(f"Updated {shifted['balance']} balance adjustments from weekends to next Monday.")
    print(f"Updated {shifted['savings']} savings adjustments from weekends to next Monday.")


COMMANDS = {
    "accrue-savings": _accrue,
    "check-weekend": _check_weekend,
    "shift-weekend-adjustments": _shift_weekend,
}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(prog="collectbook", description="Collectbook maintenance jobs")
    parser.add_argument("command", choices=sorted(COMMANDS))
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    clock = BusinessClock(settings.business_timezone)
    db = SessionLocal()
    try:
        COMMANDS[args.command](db, clock)
    except DomainException as e:
        logging.error(f"{args.command} failed: {e}")
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
