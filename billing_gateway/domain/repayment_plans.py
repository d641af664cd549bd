"""Repayment plan generation for funded cash advances"""

import logging
from typing import List

from billing_gateway.domain.models import Advance, Debit, TransactionStatus
from billing_gateway.utils.date_utils import add_weeks

logger = logging.getLogger(__name__)


def split_amount(amount_cents: int, number_of_debits: int) -> List[int]:
    """
    Split an advance into equal debit amounts.

    Last debit absorbs the rounding remainder (≤ number_of_debits-1 cents drift),
    so a plan always sums to the advance amount.

    Example:
        30001 cents / 3 = 10000 base, remainder 1 → [10000, 10000, 10001]
    """
    base_amount = amount_cents // number_of_debits
    remainder = amount_cents % number_of_debits

    amounts = [base_amount] * number_of_debits
    amounts[-1] += remainder
    return amounts


def generate_repayment_plan(advance: Advance, number_of_debits: int) -> List[Debit]:
    """
    Generate weekly ON_HOLD debits repaying a single advance.

    Debit i (1-based) is due i weeks after the advance was funded, so the
    first repayment falls one week after funding.
    """
    amounts = split_amount(advance.amount_cents, number_of_debits)

    debits = [
        Debit(
            dst_bank_account=advance.dst_bank_account,
            amount_cents=amount,
            transaction_time=add_weeks(advance.transaction_time, week),
            status=TransactionStatus.ON_HOLD,
        )
        for week, amount in enumerate(amounts, start=1)
    ]

    logger.info(
        "Created repayment plan",
        extra={
            "dst_bank_account": advance.dst_bank_account,
            "total_cents": advance.amount_cents,
            "number_of_debits": number_of_debits,
            "debit_amount_cents": amounts[0],
        },
    )
    return debits


def generate_plans_for_unplanned_advances(repository, number_of_debits: int) -> List[Debit]:
    """
    Build repayment plans for every funded advance that does not have one yet.

    Nothing is persisted here; the caller saves the returned debits. Which
    advances count as unplanned is decided by the repository query, which
    excludes accounts that already have debits.
    """
    repayments: List[Debit] = []
    for advance in repository.find_advances_without_repayment_plan():
        repayments.extend(generate_repayment_plan(advance, number_of_debits))
    return repayments
