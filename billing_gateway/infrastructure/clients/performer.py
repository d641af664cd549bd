"""Transaction Performer webhook client with exponential backoff retry logic"""

import asyncio
import uuid
from typing import Any, Dict, List

import httpx

from billing_gateway.config import settings
from billing_gateway.domain.exceptions import PerformerWebhookError
from billing_gateway.infrastructure.observability.metrics import webhook_latency_histogram, webhook_failure_counter


def build_debits_ready_payload(debit_ids: List[uuid.UUID]) -> Dict[str, Any]:
    return {
        "event": "DEBITS_READY",
        "debit_ids": [str(debit_id) for debit_id in debit_ids],
        "count": len(debit_ids),
    }


class PerformerClient:
    """Notifies the Transaction Performer that debits are waiting to be sent"""

    def __init__(
        self,
        webhook_url: str,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.webhook_url = webhook_url
        self.timeout = settings.http_timeout_seconds if timeout is None else timeout
        self.max_retries = settings.webhook_max_retries if max_retries is None else max_retries
        self.backoff_base = settings.webhook_backoff_base if backoff_base is None else backoff_base

    async def send_debits_ready_event(self, payload: Dict[str, Any]) -> None:
        """
        Send DEBITS_READY event to the performer with retry logic.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^(attempt-1))
        - Retries on 5xx responses and network failures
        - 4xx responses fail on the first attempt
        - Tracks latency histogram and failure counter

        Raises:
            PerformerWebhookError: After the last attempt fails. The debits stay
                WAITING_TO_BE_SENT in the store, so nothing is lost.
        """
        attempt = 0
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            while True:
                try:
                    with webhook_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=payload)
                        response.raise_for_status()
                        return

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    webhook_failure_counter.inc()

                    if isinstance(e, httpx.HTTPStatusError) and e.response.status_code < 500:
                        raise PerformerWebhookError(
                            f"Performer rejected webhook with {e.response.status_code}: {e}"
                        ) from e

                    if attempt >= self.max_retries:
                        raise PerformerWebhookError(
                            f"Performer webhook failed after {attempt} attempts: {e}"
                        ) from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
