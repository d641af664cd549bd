"""Debit lifecycle management - core reconciliation logic run on every cycle"""

import logging
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Set

from billing_gateway.domain.exceptions import DebitNotFoundError, InvalidStatusTransitionError
from billing_gateway.domain.models import (
    Advance,
    CycleReport,
    Debit,
    TransactionDirection,
    TransactionStatus,
)
from billing_gateway.domain.repayment_plans import generate_plans_for_unplanned_advances
from billing_gateway.utils.date_utils import ONE_WEEK, utc_now

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[TransactionStatus, Set[TransactionStatus]] = {
    TransactionStatus.ON_HOLD: {TransactionStatus.WAITING_TO_BE_SENT},
    TransactionStatus.FAILURE: set(),  # relocated in time only, never re-sent
    TransactionStatus.WAITING_TO_BE_SENT: {TransactionStatus.SUCCESS, TransactionStatus.FAILURE},
    TransactionStatus.SUCCESS: set(),
}

PROMOTABLE_STATUSES = frozenset(
    status
    for status, targets in ALLOWED_TRANSITIONS.items()
    if TransactionStatus.WAITING_TO_BE_SENT in targets
)

PERFORMER_OUTCOMES = frozenset({TransactionStatus.SUCCESS, TransactionStatus.FAILURE})


def assert_transition(current: TransactionStatus, new: TransactionStatus) -> None:
    if new not in ALLOWED_TRANSITIONS.get(current, set()):
        raise InvalidStatusTransitionError(f"Illegal debit transition: {current.value} -> {new.value}")


def compute_week_before_last_payment(debits_sorted_by_time: List[Debit]) -> datetime:
    """Time one week before the latest debit, whatever that debit's status"""
    return debits_sorted_by_time[-1].transaction_time - ONE_WEEK


def extract_failed_debits(debits: List[Debit]) -> List[Debit]:
    return [debit for debit in debits if debit.status == TransactionStatus.FAILURE]


def is_debit_due(debit: Debit, now: datetime) -> bool:
    """A debit is due once its scheduled time has been reached"""
    return debit.transaction_time <= now


def extract_debits_to_perform(debits: List[Debit], now: datetime) -> List[Debit]:
    return [
        debit
        for debit in debits
        if debit.status in PROMOTABLE_STATUSES and is_debit_due(debit, now)
    ]


def create_and_persist_new_plans(repository, number_of_debits: int) -> int:
    """
    Generate plans for advances without one and save them in a single batch.

    Returns the number of debits created. The store is not touched when there
    is nothing to save.
    """
    new_debits = generate_plans_for_unplanned_advances(repository, number_of_debits)

    if not new_debits:
        logger.debug("No new repayment plans to save")
        return 0

    repository.save_all(new_debits)
    logger.info("Saved new repayment plans", extra={"debits_created": len(new_debits)})
    return len(new_debits)


def fetch_funded_advances(repository) -> List[Advance]:
    return repository.find_by_status_and_direction(TransactionStatus.SUCCESS, TransactionDirection.CREDIT)


def reschedule_failed_debits(repository, debits_sorted_by_time: List[Debit]) -> List[Debit]:
    """
    Move every FAILURE debit to one week before the last scheduled payment.

    Status is left as FAILURE; only the attempt time moves. Returns the moved
    debits, which are persisted in one batch when there are any.
    """
    week_before_last = compute_week_before_last_payment(debits_sorted_by_time)
    failed_debits = extract_failed_debits(debits_sorted_by_time)

    for debit in failed_debits:
        debit.transaction_time = week_before_last

    if failed_debits:
        repository.save_all(failed_debits)
        for debit in failed_debits:
            logger.info(
                "Failed debit rescheduled to one week before the last payment",
                extra={
                    "dst_bank_account": debit.dst_bank_account,
                    "amount_cents": debit.amount_cents,
                    "transaction_time": debit.transaction_time.isoformat(),
                },
            )

    return failed_debits


def promote_due_debits(repository, debits: List[Debit], now: datetime) -> List[Debit]:
    """
    Release due debits to the Transaction Performer.

    Requirements:
    - Only ON_HOLD debits are eligible; FAILURE debits keep their status
    - A debit is due when its transaction time is at or before `now`
    - Selected debits become WAITING_TO_BE_SENT and are saved in one batch
    """
    debits_to_perform = extract_debits_to_perform(debits, now)

    for debit in debits_to_perform:
        assert_transition(debit.status, TransactionStatus.WAITING_TO_BE_SENT)
        debit.status = TransactionStatus.WAITING_TO_BE_SENT

    if debits_to_perform:
        repository.save_all(debits_to_perform)
        for debit in debits_to_perform:
            logger.info(
                "Debit needs to be performed, status updated to WAITING_TO_BE_SENT",
                extra={
                    "dst_bank_account": debit.dst_bank_account,
                    "amount_cents": debit.amount_cents,
                },
            )

    return debits_to_perform


def handle_advance_debits(repository, advance: Advance, now: datetime, report: CycleReport) -> None:
    debits = repository.find_debits_by_account_ordered_by_time(advance.dst_bank_account)

    if not debits:
        # Plan generation runs first, so this only happens on inconsistent data
        logger.warning(
            "Funded advance has no debits, skipping reconciliation",
            extra={"dst_bank_account": advance.dst_bank_account},
        )
        report.advances_skipped += 1
        return

    rescheduled = reschedule_failed_debits(repository, debits)
    promoted = promote_due_debits(repository, debits, now)

    report.debits_rescheduled += len(rescheduled)
    report.debits_promoted += len(promoted)
    report.promoted_debit_ids.extend(d.transaction_id for d in promoted if d.transaction_id is not None)


def run_reconciliation_cycle(repository, number_of_debits: int, now: Optional[datetime] = None) -> CycleReport:
    """
    Main entry point: one reconciliation pass over all funded advances.

    Flow:
    1. Create and persist repayment plans for advances without one
    2. Fetch every funded advance (including ones planned in earlier cycles)
    3. Per advance: reschedule failed debits, then promote due debits

    Transaction handling and locking belong to the caller.
    """
    now = now or utc_now()
    report = CycleReport()

    report.debits_created = create_and_persist_new_plans(repository, number_of_debits)
    report.plans_created = report.debits_created // number_of_debits

    for advance in fetch_funded_advances(repository):
        handle_advance_debits(repository, advance, now, report)

    return report


def record_debit_outcome(repository, debit_id: uuid.UUID, status: TransactionStatus) -> Debit:
    """Store the result the Transaction Performer reports for a sent debit"""
    if status not in PERFORMER_OUTCOMES:
        raise InvalidStatusTransitionError(f"Outcome must be SUCCESS or FAILURE, got {status.value}")

    debit = repository.get_debit(debit_id)
    if debit is None:
        raise DebitNotFoundError(f"Debit {debit_id} not found")

    assert_transition(debit.status, status)
    debit.status = status
    repository.save_all([debit])
    return debit
