"""Domain models - pure Python dataclasses representing billing entities"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class TransactionDirection(str, Enum):
    """Money flow relative to the borrower's account"""

    CREDIT = "CREDIT"  # advance paid out to the borrower
    DEBIT = "DEBIT"  # repayment collected from the borrower


class TransactionStatus(str, Enum):
    ON_HOLD = "ON_HOLD"
    WAITING_TO_BE_SENT = "WAITING_TO_BE_SENT"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


@dataclass
class Advance:
    """Funded cash advance (incoming CREDIT transaction), read-only to the core"""

    dst_bank_account: str
    amount_cents: int
    transaction_time: datetime
    status: TransactionStatus
    transaction_id: Optional[uuid.UUID] = None
    direction: TransactionDirection = TransactionDirection.CREDIT


@dataclass
class Debit:
    """Single scheduled repayment collected from the borrower's account"""

    dst_bank_account: str
    amount_cents: int
    transaction_time: datetime
    status: TransactionStatus = TransactionStatus.ON_HOLD
    transaction_id: Optional[uuid.UUID] = None
    direction: TransactionDirection = TransactionDirection.DEBIT


@dataclass
class CycleReport:
    """Outcome of one reconciliation cycle"""

    plans_created: int = 0
    debits_created: int = 0
    debits_rescheduled: int = 0
    debits_promoted: int = 0
    advances_skipped: int = 0
    promoted_debit_ids: List[uuid.UUID] = field(default_factory=list)
