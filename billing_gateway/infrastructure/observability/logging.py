"""Structured JSON logging for production observability"""

import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict
from pythonjsonlogger import jsonlogger

from billing_gateway.config import settings
from billing_gateway.domain.models import CycleReport


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with timestamp and service metadata"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["timestamp"] = datetime.now(timezone.utc).isoformat()
        log_record["level"] = record.levelname
        log_record["service"] = settings.service_name


def setup_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging"""
    logger = logging.getLogger()
    logger.setLevel(level)

    # Remove existing handlers
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s"))
    logger.addHandler(handler)


def log_cycle(report: CycleReport, duration_ms: float) -> None:
    """Log structured reconciliation outcome for analysis"""
    logging.info(
        "Reconciliation cycle completed",
        extra={
            "step": "reconciliation_complete",
            "plans_created": report.plans_created,
            "debits_created": report.debits_created,
            "debits_rescheduled": report.debits_rescheduled,
            "debits_promoted": report.debits_promoted,
            "advances_skipped": report.advances_skipped,
            "duration_ms": duration_ms,
        },
    )


def log_cycle_failure(error: Exception, duration_ms: float) -> None:
    logging.error(
        f"Unknown exception while handling debits: {error}",
        exc_info=error,
        extra={"step": "reconciliation_failed", "duration_ms": duration_ms},
    )
