"""POST /v1/reconciliation/run - trigger one reconciliation cycle on demand"""

import asyncio
import logging
from fastapi import APIRouter, Depends, HTTPException, Request

from billing_gateway.api.dependencies import get_request_id, get_scheduler
from billing_gateway.api.v1.schemas import ReconciliationResponse
from billing_gateway.infrastructure.scheduling.debits_scheduler import DebitsScheduler

router = APIRouter()


@router.post("/reconciliation/run", response_model=ReconciliationResponse)
async def run_reconciliation(
    request: Request,
    scheduler: DebitsScheduler = Depends(get_scheduler),
):
    """
    Run a cycle now instead of waiting for the next scheduled firing.

    Flow:
    1. Create repayment plans for funded advances without one
    2. Move failed debits to one week before the last payment
    3. Mark due debits WAITING_TO_BE_SENT
    4. Notify the Transaction Performer (when configured)
    """
    request_id = get_request_id(request)

    try:
        # Blocks on the cycle lock while a scheduled cycle is running
        report = await asyncio.to_thread(scheduler.run_cycle)
    except Exception as e:
        logging.error(f"Reconciliation failed: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Reconciliation failed")

    await scheduler.notify_performer(report)
    return ReconciliationResponse.from_report(report)
