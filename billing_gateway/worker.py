"""Standalone reconciliation worker: runs the debits scheduler without the HTTP API"""

import asyncio
import logging

from billing_gateway.config import settings
from billing_gateway.infrastructure.database.session import SessionLocal
from billing_gateway.infrastructure.observability.logging import setup_logging
from billing_gateway.infrastructure.scheduling.debits_scheduler import build_scheduler


def main() -> None:
    setup_logging(settings.log_level)
    scheduler = build_scheduler(settings, SessionLocal)

    logging.info(
        "Starting debits scheduler",
        extra={
            "number_of_debits": settings.number_of_debits,
            "period_ms": settings.debits_cycle_period_ms,
        },
    )
    try:
        asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        logging.info("Debits scheduler stopped")


if __name__ == "__main__":
    main()
