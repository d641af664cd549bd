"""GET /v1/debits/ready and POST /v1/debits/{debit_id}/outcome - Transaction Performer hand-off"""

import logging
import uuid
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from billing_gateway.api.dependencies import get_request_id
from billing_gateway.api.v1.schemas import DebitOutcomeRequest, DebitSchema, ReadyDebitsResponse
from billing_gateway.domain.debits import record_debit_outcome
from billing_gateway.domain.exceptions import DebitNotFoundError, InvalidStatusTransitionError
from billing_gateway.domain.models import TransactionStatus
from billing_gateway.infrastructure.database.repositories import TransactionRepository
from billing_gateway.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/debits/ready", response_model=ReadyDebitsResponse)
def list_ready_debits(
    limit: int = Query(100, ge=1, le=1000, description="Maximum debits to return"),
    db: Session = Depends(get_db),
):
    """Debits released by reconciliation (WAITING_TO_BE_SENT), earliest first"""
    repo = TransactionRepository(db)
    debits = repo.find_debits_by_status(TransactionStatus.WAITING_TO_BE_SENT, limit=limit)
    return ReadyDebitsResponse(debits=[DebitSchema.from_domain(debit) for debit in debits])


@router.post("/debits/{debit_id}/outcome", response_model=DebitSchema)
def report_debit_outcome(
    debit_id: str,
    request_body: DebitOutcomeRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Record the Transaction Performer's result for a sent debit.

    Only WAITING_TO_BE_SENT debits accept an outcome. A FAILURE outcome is
    picked up by the next cycle and moved to the week before the last payment.
    """
    request_id = get_request_id(request)

    try:
        debit_uuid = uuid.UUID(debit_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid debit ID format")

    try:
        debit = record_debit_outcome(TransactionRepository(db), debit_uuid, TransactionStatus(request_body.status))
        db.commit()

    except DebitNotFoundError as e:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(e))

    except InvalidStatusTransitionError as e:
        db.rollback()
        logging.warning(f"Rejected debit outcome: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=409, detail=str(e))

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    logging.info(
        "Debit outcome recorded",
        extra={"request_id": request_id, "debit_id": debit_id, "status": debit.status.value},
    )
    return DebitSchema.from_domain(debit)
