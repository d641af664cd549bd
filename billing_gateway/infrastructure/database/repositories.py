"""Data access layer for billing transactions"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import exists
from sqlalchemy.orm import Session, aliased
from billing_gateway.infrastructure.database.models import BillingTransaction
from billing_gateway.domain.exceptions import DebitNotFoundError
from billing_gateway.domain.models import Advance, Debit, TransactionDirection, TransactionStatus
from billing_gateway.utils.date_utils import ensure_utc


def _to_advance(row: BillingTransaction) -> Advance:
    return Advance(
        transaction_id=row.id,
        dst_bank_account=row.dst_bank_account,
        amount_cents=row.amount_cents,
        transaction_time=ensure_utc(row.transaction_time),
        status=TransactionStatus(row.status),
    )


def _to_debit(row: BillingTransaction) -> Debit:
    return Debit(
        transaction_id=row.id,
        dst_bank_account=row.dst_bank_account,
        amount_cents=row.amount_cents,
        transaction_time=ensure_utc(row.transaction_time),
        status=TransactionStatus(row.status),
    )


class TransactionRepository:
    """Repository for advances and repayment debits"""

    def __init__(self, db: Session):
        self.db = db

    def lock_for_reconciliation(self) -> None:
        """
        Take write locks on every transaction row for the rest of the session.

        Concurrent cycles block here until the holder commits or rolls back.
        SQLite ignores FOR UPDATE; the scheduler's in-process lock covers it.
        """
        self.db.query(BillingTransaction.id).with_for_update().all()

    def find_advances_without_repayment_plan(self) -> List[Advance]:
        """Funded advances whose account has no debit rows yet"""
        debit = aliased(BillingTransaction)
        has_plan = exists().where(
            debit.dst_bank_account == BillingTransaction.dst_bank_account,
            debit.direction == TransactionDirection.DEBIT.value,
        )
        rows = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.direction == TransactionDirection.CREDIT.value,
                BillingTransaction.status == TransactionStatus.SUCCESS.value,
                ~has_plan,
            )
            .order_by(BillingTransaction.transaction_time)
            .all()
        )
        return [_to_advance(row) for row in rows]

    def find_by_status_and_direction(
        self,
        status: TransactionStatus,
        direction: TransactionDirection,
    ) -> List[Advance]:
        rows = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.status == status.value,
                BillingTransaction.direction == direction.value,
            )
            .order_by(BillingTransaction.transaction_time)
            .all()
        )
        return [_to_advance(row) for row in rows]

    def find_debits_by_account_ordered_by_time(self, dst_bank_account: str) -> List[Debit]:
        """All debits of an account, earliest first (callers rely on the last being the latest)"""
        rows = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.dst_bank_account == dst_bank_account,
                BillingTransaction.direction == TransactionDirection.DEBIT.value,
            )
            .order_by(BillingTransaction.transaction_time, BillingTransaction.created_at)
            .all()
        )
        return [_to_debit(row) for row in rows]

    def find_debits_by_status(self, status: TransactionStatus, limit: int = 100) -> List[Debit]:
        rows = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.status == status.value,
                BillingTransaction.direction == TransactionDirection.DEBIT.value,
            )
            .order_by(BillingTransaction.transaction_time)
            .limit(limit)
            .all()
        )
        return [_to_debit(row) for row in rows]

    def get_debit(self, debit_id: uuid.UUID) -> Optional[Debit]:
        row = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.id == debit_id,
                BillingTransaction.direction == TransactionDirection.DEBIT.value,
            )
            .first()
        )
        return _to_debit(row) if row else None

    def save_all(self, debits: List[Debit]) -> None:
        """
        Insert new debits and write back time/status of existing ones.

        New debits get their generated id assigned in place.
        """
        if not debits:
            return

        existing_ids = [d.transaction_id for d in debits if d.transaction_id is not None]
        rows_by_id: Dict[uuid.UUID, BillingTransaction] = {}
        if existing_ids:
            rows_by_id = {
                row.id: row
                for row in self.db.query(BillingTransaction).filter(BillingTransaction.id.in_(existing_ids))
            }

        inserted = []
        for debit in debits:
            if debit.transaction_id is None:
                row = BillingTransaction(
                    dst_bank_account=debit.dst_bank_account,
                    amount_cents=debit.amount_cents,
                    transaction_time=ensure_utc(debit.transaction_time),
                    direction=TransactionDirection.DEBIT.value,
                    status=debit.status.value,
                )
                self.db.add(row)
                inserted.append((debit, row))
                continue

            row = rows_by_id.get(debit.transaction_id)
            if row is None:
                raise DebitNotFoundError(f"Debit {debit.transaction_id} not found")
            row.transaction_time = ensure_utc(debit.transaction_time)
            row.status = debit.status.value

        self.db.flush()  # Get IDs without committing
        for debit, row in inserted:
            debit.transaction_id = row.id

    def create_advance(
        self,
        dst_bank_account: str,
        amount_cents: int,
        transaction_time: datetime,
        status: TransactionStatus = TransactionStatus.SUCCESS,
    ) -> Advance:
        """Record a funded (or failed) advance credited to the borrower"""
        row = BillingTransaction(
            dst_bank_account=dst_bank_account,
            amount_cents=amount_cents,
            transaction_time=ensure_utc(transaction_time),
            direction=TransactionDirection.CREDIT.value,
            status=status.value,
        )
        self.db.add(row)
        self.db.flush()
        return _to_advance(row)

    def has_funded_advance(self, dst_bank_account: str) -> bool:
        return (
            self.db.query(BillingTransaction.id)
            .filter(
                BillingTransaction.dst_bank_account == dst_bank_account,
                BillingTransaction.direction == TransactionDirection.CREDIT.value,
                BillingTransaction.status == TransactionStatus.SUCCESS.value,
            )
            .first()
            is not None
        )

    def get_advance_by_account(self, dst_bank_account: str) -> Optional[Advance]:
        """Most recent advance recorded for an account"""
        row = (
            self.db.query(BillingTransaction)
            .filter(
                BillingTransaction.dst_bank_account == dst_bank_account,
                BillingTransaction.direction == TransactionDirection.CREDIT.value,
            )
            .order_by(BillingTransaction.transaction_time.desc())
            .first()
        )
        return _to_advance(row) if row else None
