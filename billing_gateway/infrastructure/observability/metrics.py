"""Prometheus metrics for monitoring reconciliation cycles, debit flow, and webhook performance"""

from prometheus_client import Counter, Histogram

from billing_gateway.domain.models import CycleReport

# Reconciliation metrics
reconciliation_cycle_counter = Counter(
    "billing_reconciliation_cycles_total",
    "Reconciliation cycles run",
    ["outcome"],  # success | failure
)

reconciliation_duration_histogram = Histogram(
    "billing_reconciliation_cycle_duration_seconds",
    "Reconciliation cycle duration",
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

debits_created_counter = Counter(
    "billing_debits_created_total",
    "Repayment debits created by plan generation",
)

debits_rescheduled_counter = Counter(
    "billing_debits_rescheduled_total",
    "Failed debits moved to one week before the last payment",
)

debits_promoted_counter = Counter(
    "billing_debits_promoted_total",
    "Debits released to the Transaction Performer (WAITING_TO_BE_SENT)",
)

advances_skipped_counter = Counter(
    "billing_advances_skipped_total",
    "Funded advances skipped because they had no debits",
)

# Performer webhook metrics
webhook_latency_histogram = Histogram(
    "performer_webhook_latency_seconds",
    "Transaction Performer webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

webhook_failure_counter = Counter(
    "performer_webhook_failures_total",
    "Failed performer webhook deliveries",
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_cycle(report: CycleReport, duration_seconds: float) -> None:
    """Record per-cycle debit flow for monitoring plan creation and collection"""
    reconciliation_cycle_counter.labels(outcome="success").inc()
    reconciliation_duration_histogram.observe(duration_seconds)

    debits_created_counter.inc(report.debits_created)
    debits_rescheduled_counter.inc(report.debits_rescheduled)
    debits_promoted_counter.inc(report.debits_promoted)
    advances_skipped_counter.inc(report.advances_skipped)


def record_cycle_failure(duration_seconds: float) -> None:
    reconciliation_cycle_counter.labels(outcome="failure").inc()
    reconciliation_duration_histogram.observe(duration_seconds)
