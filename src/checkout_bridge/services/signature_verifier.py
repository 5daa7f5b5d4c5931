"""Stripe webhook signature verification against the raw request bytes."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

import stripe

from checkout_bridge.core.responses import InvalidSignature, UnreadableBody

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 300


class SignatureVerifier:
    def __init__(self, secret: str, tolerance: int = DEFAULT_TOLERANCE):
        if not secret or not secret.strip():
            raise ValueError("Stripe 웹훅 시크릿이 설정되지 않았습니다.")
        self.secret = secret
        self.tolerance = tolerance

    def verify(self, raw: bytes, signature_header: Optional[str]) -> Dict[str, Any]:
        """Verify the exact wire bytes, then parse those same bytes."""

        if not signature_header or not signature_header.strip():
            logger.warning("[WEBHOOK] missing Stripe-Signature header")
            raise InvalidSignature("Invalid signature")

        try:
            payload = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.warning("[WEBHOOK] body is not valid UTF-8")
            raise UnreadableBody("Invalid body") from exc

        try:
            stripe.WebhookSignature.verify_header(payload, signature_header, self.secret, self.tolerance)
        except stripe.SignatureVerificationError as exc:
            logger.warning("[WEBHOOK] signature verification failed")
            raise InvalidSignature("Invalid signature") from exc

        try:
            event = json.loads(payload)
        except json.JSONDecodeError as exc:
            logger.warning("[WEBHOOK] verified body is not valid JSON")
            raise UnreadableBody("Invalid body") from exc

        if not isinstance(event, dict) or not event.get("type"):
            raise UnreadableBody("Invalid event envelope")
        return event
