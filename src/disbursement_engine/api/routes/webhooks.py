"""Inbound provider webhook endpoint."""

import logging

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import PlainTextResponse

from disbursement_engine.api.dependencies import System
from disbursement_engine.services.webhook_reconciler import SIGNATURE_HEADER

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["webhooks"])


@router.post("/webhook", response_class=PlainTextResponse)
async def paystack_webhook(request: Request, system: System) -> PlainTextResponse:
    """Receive a signed Paystack event.

    The raw body is read before any parsing so the signature is checked
    against the exact bytes the provider signed.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER, "")

    outcome = await run_in_threadpool(system.reconciler.handle, raw_body, signature)
    if outcome.result is not None:
        logger.info(
            "Webhook %s reconciled: %s",
            outcome.event_name,
            outcome.result.status.value,
        )
    return PlainTextResponse(outcome.message, status_code=outcome.http_status)
