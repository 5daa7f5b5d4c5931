"""Checkout and billing-portal session endpoints."""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
import stripe

from checkout_bridge.core.config import Settings
from checkout_bridge.core.dependencies import get_settings, get_stripe_client
from checkout_bridge.core.responses import ServiceUnavailable, ValidationException
from checkout_bridge.schemas.checkout import CheckoutSessionRequest, CheckoutSessionResponse
from checkout_bridge.schemas.orders import Plan
from checkout_bridge.services.line_item_mapper import ATTRIBUTION_KEYS
from checkout_bridge.services.stripe_api_client import StripeAPIClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["checkout"])

DEFAULT_ORIGIN = "https://localhost:3000"

PLAN_NAMES = {Plan.YEARLY: "Yearly", Plan.MONTHLY: "Monthly"}
PLAN_INTERVALS = {Plan.YEARLY: "year", Plan.MONTHLY: "month"}


def _request_origin(request: Request) -> str:
    origin = request.headers.get("origin") or request.headers.get("referer") or DEFAULT_ORIGIN
    return origin.rstrip("/")


async def _read_checkout_request(request: Request) -> CheckoutSessionRequest:
    raw = await request.body()
    if not raw.strip():
        return CheckoutSessionRequest()
    try:
        return CheckoutSessionRequest.model_validate_json(raw)
    except ValidationError as exc:
        raise ValidationException("Invalid JSON body") from exc


def _session_metadata(plan: Plan, body: CheckoutSessionRequest) -> Dict[str, str]:
    """plan plus forwarded catalog ids and attribution; echoed back on every later event."""

    metadata = {"plan": plan.value}
    for key in ("product_id", "variant_id", *ATTRIBUTION_KEYS):
        value = getattr(body, key, None)
        if isinstance(value, str) and value.strip():
            metadata[key] = value.strip()
    return metadata


def build_checkout_params(
    settings: Settings,
    plan: Plan,
    price: Dict[str, Any],
    metadata: Dict[str, str],
    return_url: str,
) -> Dict[str, Any]:
    recurring = price.get("recurring") or {}
    return {
        "mode": "subscription",
        "ui_mode": "custom",
        "payment_method_types": ["card", "link"],
        "line_items": [
            {
                "price_data": {
                    "currency": str(price.get("currency") or "aud").lower(),
                    "product_data": {"name": PLAN_NAMES[plan]},
                    "unit_amount": price.get("unit_amount"),
                    "recurring": {"interval": recurring.get("interval") or PLAN_INTERVALS[plan]},
                },
                "quantity": 1,
            }
        ],
        "subscription_data": {
            "trial_period_days": settings.STRIPE_TRIAL_PERIOD_DAYS,
            "metadata": metadata,
        },
        "return_url": return_url,
        "metadata": metadata,
    }


@router.post("/create-checkout-session", response_model=CheckoutSessionResponse)
async def create_checkout_session(
    request: Request,
    settings: Settings = Depends(get_settings),
    stripe_client: Optional[StripeAPIClient] = Depends(get_stripe_client),
):
    if stripe_client is None or not settings.STRIPE_PRICE_YEARLY or not settings.STRIPE_PRICE_MONTHLY:
        raise ServiceUnavailable("Server missing Stripe configuration")

    body = await _read_checkout_request(request)
    try:
        plan = Plan((body.plan or "").strip().lower())
    except ValueError:
        raise ValidationException('Invalid plan. Use "yearly" or "monthly".')

    price_id = settings.STRIPE_PRICE_YEARLY if plan is Plan.YEARLY else settings.STRIPE_PRICE_MONTHLY
    return_url = f"{_request_origin(request)}/?session_id={{CHECKOUT_SESSION_ID}}&success=1"

    try:
        price = await stripe_client.retrieve_price(price_id)
        session = await stripe_client.create_checkout_session(
            build_checkout_params(settings, plan, price, _session_metadata(plan, body), return_url)
        )
    except stripe.StripeError as exc:
        logger.error("[STRIPE] session create error: %s", exc)
        raise HTTPException(status_code=500, detail=exc.user_message or "Failed to create checkout session") from exc

    logger.info("[STRIPE] checkout session created: id=%s plan=%s", session.get("id"), plan.value)
    return CheckoutSessionResponse(client_secret=session.get("client_secret"), return_url=return_url)


@router.get("/create-portal-session")
async def create_portal_session(
    request: Request,
    session_id: Optional[str] = Query(default=None),
    stripe_client: Optional[StripeAPIClient] = Depends(get_stripe_client),
):
    if stripe_client is None:
        logger.error("[STRIPE] create-portal-session: missing STRIPE_SECRET_KEY")
        raise ServiceUnavailable("Portal not configured")
    if not session_id or not session_id.strip():
        raise ValidationException("Missing session_id")

    try:
        session = await stripe_client.retrieve_checkout_session(session_id.strip())
    except stripe.StripeError as exc:
        logger.error("[STRIPE] create-portal-session: retrieve session failed: %s", exc)
        raise ValidationException("Invalid session") from exc

    if session.get("mode") != "subscription":
        raise ValidationException("Session is not a subscription")
    customer = session.get("customer")
    customer_id = customer.get("id") if isinstance(customer, dict) else customer
    if not customer_id:
        raise ValidationException("No customer for this session")

    return_url = f"{_request_origin(request)}/?portal=1"
    try:
        portal = await stripe_client.create_billing_portal_session(customer_id, return_url)
    except stripe.StripeError as exc:
        logger.error("[STRIPE] create-portal-session: portal create failed: %s", exc)
        raise HTTPException(status_code=500, detail="Failed to create portal session") from exc

    if not portal.get("url"):
        raise HTTPException(status_code=500, detail="No portal URL")
    return RedirectResponse(portal["url"], status_code=302)
