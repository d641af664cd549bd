"""Pydantic schemas for API request/response validation"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

from billing_gateway.domain.models import Advance, CycleReport, Debit


class AdvanceRequest(BaseModel):
    """Request body for POST /v1/advances"""

    dst_bank_account: str = Field(..., min_length=1, description="Borrower bank account identifier")
    amount_cents: int = Field(..., gt=0, description="Advanced amount in cents")
    transaction_time: Optional[datetime] = Field(None, description="Funding time (default: now)")
    status: Literal["SUCCESS", "FAILURE"] = "SUCCESS"


class AdvanceSchema(BaseModel):
    transaction_id: str
    dst_bank_account: str
    amount_cents: int
    transaction_time: datetime
    status: str

    @classmethod
    def from_domain(cls, advance: Advance) -> "AdvanceSchema":
        return cls(
            transaction_id=str(advance.transaction_id),
            dst_bank_account=advance.dst_bank_account,
            amount_cents=advance.amount_cents,
            transaction_time=advance.transaction_time,
            status=advance.status.value,
        )


class DebitSchema(BaseModel):
    """Single repayment debit"""

    transaction_id: str
    dst_bank_account: str
    amount_cents: int
    transaction_time: datetime
    status: str

    @classmethod
    def from_domain(cls, debit: Debit) -> "DebitSchema":
        return cls(
            transaction_id=str(debit.transaction_id),
            dst_bank_account=debit.dst_bank_account,
            amount_cents=debit.amount_cents,
            transaction_time=debit.transaction_time,
            status=debit.status.value,
        )


class PlanResponse(BaseModel):
    """Response for GET /v1/accounts/{account}/plan"""

    dst_bank_account: str
    advance: AdvanceSchema
    total_debit_cents: int
    debits: List[DebitSchema]


class ReadyDebitsResponse(BaseModel):
    """Response for GET /v1/debits/ready"""

    debits: List[DebitSchema]


class DebitOutcomeRequest(BaseModel):
    """Request body for POST /v1/debits/{debit_id}/outcome"""

    status: Literal["SUCCESS", "FAILURE"]


class ReconciliationResponse(BaseModel):
    """Response for POST /v1/reconciliation/run"""

    plans_created: int
    debits_created: int
    debits_rescheduled: int
    debits_promoted: int
    advances_skipped: int

    @classmethod
    def from_report(cls, report: CycleReport) -> "ReconciliationResponse":
        return cls(
            plans_created=report.plans_created,
            debits_created=report.debits_created,
            debits_rescheduled=report.debits_rescheduled,
            debits_promoted=report.debits_promoted,
            advances_skipped=report.advances_skipped,
        )
