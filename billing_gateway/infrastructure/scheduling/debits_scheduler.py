"""Periodic debit reconciliation with a locked, all-or-nothing cycle boundary"""

import asyncio
import logging
import threading
import time
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from billing_gateway.config import Settings
from billing_gateway.domain.debits import run_reconciliation_cycle
from billing_gateway.domain.exceptions import InvalidConfigurationError, PerformerWebhookError
from billing_gateway.domain.models import CycleReport
from billing_gateway.infrastructure.clients.performer import PerformerClient, build_debits_ready_payload
from billing_gateway.infrastructure.database.repositories import TransactionRepository
from billing_gateway.infrastructure.observability.logging import log_cycle, log_cycle_failure
from billing_gateway.infrastructure.observability.metrics import record_cycle, record_cycle_failure

logger = logging.getLogger(__name__)


def run_reconciliation_cycle_in_transaction(
    db: Session,
    number_of_debits: int,
    now: Optional[datetime] = None,
) -> CycleReport:
    """
    Run one cycle inside a single database transaction.

    Rows are locked FOR UPDATE before any read, and every write of the cycle
    is committed together or rolled back together.
    """
    repository = TransactionRepository(db)
    try:
        repository.lock_for_reconciliation()
        report = run_reconciliation_cycle(repository, number_of_debits, now=now)
        db.commit()
    except Exception:
        db.rollback()
        raise
    return report


class DebitsScheduler:
    """Fires the reconciliation cycle on a fixed rate; cycles never overlap"""

    def __init__(
        self,
        session_factory: sessionmaker,
        number_of_debits: int,
        period_ms: int,
        performer_client: Optional[PerformerClient] = None,
    ):
        if number_of_debits <= 0:
            raise InvalidConfigurationError(f"number_of_debits must be positive, got {number_of_debits}")
        if period_ms <= 0:
            raise InvalidConfigurationError(f"debits cycle period must be positive, got {period_ms}ms")

        self.session_factory = session_factory
        self.number_of_debits = number_of_debits
        self.period_seconds = period_ms / 1000
        self.performer_client = performer_client
        self._cycle_lock = threading.Lock()
        self._task: Optional[asyncio.Task] = None

    def run_cycle(self, now: Optional[datetime] = None) -> CycleReport:
        """Run one cycle now; errors propagate after rollback"""
        with self._cycle_lock:
            db = self.session_factory()
            try:
                return run_reconciliation_cycle_in_transaction(db, self.number_of_debits, now=now)
            finally:
                db.close()

    def run_once(self, now: Optional[datetime] = None) -> Optional[CycleReport]:
        """
        Scheduled entry point. Any failure is logged and swallowed so the next
        period runs regardless; returns None in that case.
        """
        logger.debug(
            "Moving failed debits to the week before the last payment, "
            "then marking due debits WAITING_TO_BE_SENT"
        )
        start_time = time.time()

        try:
            report = self.run_cycle(now)
        except Exception as e:
            duration = time.time() - start_time
            record_cycle_failure(duration)
            log_cycle_failure(e, duration * 1000)
            return None

        duration = time.time() - start_time
        record_cycle(report, duration)
        log_cycle(report, duration * 1000)
        return report

    async def notify_performer(self, report: CycleReport) -> None:
        if self.performer_client is None or not report.promoted_debit_ids:
            return

        try:
            await self.performer_client.send_debits_ready_event(
                build_debits_ready_payload(report.promoted_debit_ids)
            )
        except PerformerWebhookError as e:
            logger.error(f"Performer notification failed: {e}")

    async def run_forever(self) -> None:
        loop = asyncio.get_running_loop()
        next_fire = loop.time()

        while True:
            report = await asyncio.to_thread(self.run_once)
            if report is not None:
                try:
                    await self.notify_performer(report)
                except Exception:
                    logger.exception("Performer notification raised, scheduler keeps running")

            # A slow cycle pushes the next firing back instead of stacking runs
            next_fire = max(next_fire + self.period_seconds, loop.time())
            await asyncio.sleep(next_fire - loop.time())

    def start(self) -> asyncio.Task:
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run_forever(), name="debits-scheduler")
        return self._task

    async def stop(self) -> None:
        if self._task is None:
            return

        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


def build_scheduler(config: Settings, session_factory: sessionmaker) -> DebitsScheduler:
    performer_client = (
        PerformerClient(config.performer_webhook_url) if config.performer_webhook_url else None
    )
    return DebitsScheduler(
        session_factory=session_factory,
        number_of_debits=config.number_of_debits,
        period_ms=config.debits_cycle_period_ms,
        performer_client=performer_client,
    )
