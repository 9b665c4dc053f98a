"""Prometheus metrics for accrual runs, ledger postings and audit webhook performance"""

from prometheus_client import Counter, Histogram

# Accrual metrics
accrual_rows_counter = Counter(
    "collectbook_accrual_rows_total",
    "Savings accrual rows inserted",
)

accrual_members_counter = Counter(
    "collectbook_accrual_members_total",
    "Members credited by savings accrual runs",
)

accrual_failures_counter = Counter(
    "collectbook_accrual_failures_total",
    "Savings accrual runs that rolled back",
)

# Adjustment metrics
adjustment_counter = Counter(
    "collectbook_adjustments_total",
    "Ledger adjustments posted",
    ["kind"],  # BALANCE_DEDUCT | BALANCE_INCREASE | SAVINGS_INCREASE | SAVINGS_WITHDRAW
)

duplicate_adjustment_counter = Counter(
    "collectbook_duplicate_adjustments_total",
    "Adjustments rejected because one was already posted today",
    ["kind"],
)

reversal_counter = Counter(
    "collectbook_reversals_total",
    "Ledger adjustments reversed",
    ["ledger"],  # balance | savings
)

days_milestone_counter = Counter(
    "collectbook_days_milestone_total",
    "Deductions that left a member at or past the collection days milestone",
)

# Audit webhook metrics
webhook_latency_histogram = Histogram(
    "audit_webhook_latency_seconds",
    "Audit webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "audit_webhook_failures_total",
    "Failed audit webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_accrual(inserted_rows: int, updated_members: int) -> None:
    accrual_rows_counter.inc(inserted_rows)
    accrual_members_counter.inc(updated_members)


def record_adjustment(kind: str, duplicate: bool = False) -> None:
    """Count a posting attempt under its outcome"""
    if duplicate:
        duplicate_adjustment_counter.labels(kind=kind).inc()
    else:
        adjustment_counter.labels(kind=kind).inc()
