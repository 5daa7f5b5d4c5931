"""
Stripe Webhook Router

Receives Stripe payment-lifecycle notifications:
- configuration check (503 when the webhook secret or API key is missing)
- raw-body signature verification (400 on failure)
- classification and order/sync processing via WebhookProcessor
Answers {"received": true} for every event it handles or intentionally ignores.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request
from starlette.requests import ClientDisconnect

from checkout_bridge.core.dependencies import get_signature_verifier, get_webhook_processor
from checkout_bridge.core.responses import ServiceUnavailable, UnreadableBody, received_response
from checkout_bridge.services.signature_verifier import SignatureVerifier
from checkout_bridge.services.webhook_processor import WebhookProcessor

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["webhooks", "stripe"])


@router.post("/stripe-webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(default=None, alias="Stripe-Signature"),
    verifier: Optional[SignatureVerifier] = Depends(get_signature_verifier),
    processor: Optional[WebhookProcessor] = Depends(get_webhook_processor),
):
    if verifier is None or processor is None:
        logger.error("[WEBHOOK] missing STRIPE_SECRET_KEY or STRIPE_WEBHOOK_SECRET")
        raise ServiceUnavailable("Webhook not configured")

    # raw bytes straight from the stream; request.json() must never run first
    try:
        raw = await request.body()
    except ClientDisconnect as exc:
        logger.error("[WEBHOOK] failed to read body: client disconnected")
        raise UnreadableBody("Invalid body") from exc

    logger.info("[WEBHOOK] received: len=%s, has_signature=%s", len(raw), bool(stripe_signature))

    event = verifier.verify(raw, stripe_signature)
    outcome = await processor.process(event)

    logger.info(
        "[WEBHOOK] done: event=%s category=%s status=%s reason=%s",
        outcome.event_id,
        outcome.category.value,
        outcome.status,
        outcome.reason,
    )
    return received_response()
