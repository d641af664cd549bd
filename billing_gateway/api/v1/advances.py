"""POST /v1/advances and GET /v1/accounts/{account}/plan - advance intake and plan view"""

import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from billing_gateway.api.dependencies import get_request_id
from billing_gateway.api.v1.schemas import AdvanceRequest, AdvanceSchema, DebitSchema, PlanResponse
from billing_gateway.domain.exceptions import AdvanceAlreadyExistsError
from billing_gateway.domain.models import TransactionStatus
from billing_gateway.infrastructure.database.repositories import TransactionRepository
from billing_gateway.infrastructure.database.session import get_db
from billing_gateway.utils.date_utils import utc_now

router = APIRouter()


@router.post("/advances", response_model=AdvanceSchema, status_code=201)
def create_advance(
    request_body: AdvanceRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record an advance credited to a borrower.

    Successful advances get a repayment plan on the next reconciliation cycle.
    Debits are matched to advances by bank account, so an account can hold
    only one funded advance.
    """
    request_id = get_request_id(request)
    status = TransactionStatus(request_body.status)
    repo = TransactionRepository(db)

    try:
        if status == TransactionStatus.SUCCESS and repo.has_funded_advance(request_body.dst_bank_account):
            raise AdvanceAlreadyExistsError(
                f"Account {request_body.dst_bank_account} already has a funded advance"
            )

        advance = repo.create_advance(
            dst_bank_account=request_body.dst_bank_account,
            amount_cents=request_body.amount_cents,
            transaction_time=request_body.transaction_time or utc_now(),
            status=status,
        )
        db.commit()

    except AdvanceAlreadyExistsError as e:
        db.rollback()
        logging.warning(f"Duplicate advance: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Advance recorded",
        extra={
            "request_id": request_id,
            "dst_bank_account": advance.dst_bank_account,
            "amount_cents": advance.amount_cents,
            "status": advance.status.value,
        },
    )
    return AdvanceSchema.from_domain(advance)


@router.get("/accounts/{dst_bank_account}/plan", response_model=PlanResponse)
def get_plan(dst_bank_account: str, db: Session = Depends(get_db)):
    """
    Retrieve an account's advance with its repayment debits, earliest first.

    Debits appear once a reconciliation cycle has generated the plan.
    """
    repo = TransactionRepository(db)
    advance = repo.get_advance_by_account(dst_bank_account)

    if not advance:
        raise HTTPException(status_code=404, detail="Advance not found")

    debits = repo.find_debits_by_account_ordered_by_time(dst_bank_account)

    return PlanResponse(
        dst_bank_account=dst_bank_account,
        advance=AdvanceSchema.from_domain(advance),
        total_debit_cents=sum(debit.amount_cents for debit in debits),
        debits=[DebitSchema.from_domain(debit) for debit in debits],
    )
