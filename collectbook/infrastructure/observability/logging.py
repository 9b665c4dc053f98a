"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from pythonjsonlogger import jsonlogger


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = "collectbook"


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    # JSON handler for stdout
    handler = logging.StreamHandler(sys.stdout)
    formatter = CustomJsonFormatter(
        "%(timestamp)s %(level)s %(name)s %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def log_accrual(
    source: str,
    inserted_rows: int,
    updated_members: int,
    increment: str,
    duration_ms: float,
) -> None:
    """Log structured accrual job outcome"""
    logging.info(
        "Savings accrual completed",
        extra={
            "step": "accrual_complete",
            "source": source,
            "inserted_accrual_rows": inserted_rows,
            "updated_members": updated_members,
            "increment": increment,
            "duration_ms": duration_ms,
        },
    )


def log_adjustment(
    request_id: Optional[str],
    member_id: str,
    kind: str,
    outcome: str,
    amount: str,
) -> None:
    """Log a posting attempt; outcome is posted | duplicate"""
    logging.info(
        "Adjustment %s",
        outcome,
        extra={
            "request_id": request_id,
            "member_id": member_id,
            "step": "adjustment",
            "kind": kind,
            "outcome": outcome,
            "amount": amount,
        },
    )


def log_reversal(request_id: Optional[str], adjustment_id: str, member_id: str, kind: str) -> None:
    logging.info(
        "Adjustment reversed",
        extra={
            "request_id": request_id,
            "adjustment_id": adjustment_id,
            "member_id": member_id,
            "step": "reversal",
            "kind": kind,
        },
    )
