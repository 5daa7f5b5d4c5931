"""Public endpoints for the checkout page (no auth required)."""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Optional
import logging

from fastapi import APIRouter, Depends, HTTPException
import stripe

from checkout_bridge.core.config import Settings
from checkout_bridge.core.dependencies import get_settings, get_stripe_client
from checkout_bridge.core.responses import ServiceUnavailable
from checkout_bridge.schemas.checkout import ProductDetail
from checkout_bridge.services.stripe_api_client import StripeAPIClient

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["public"])

_TWO_DP = Decimal("0.01")


def _major_units(unit_amount: Any) -> float:
    try:
        value = Decimal(int(unit_amount)) / Decimal(100)
    except (InvalidOperation, TypeError, ValueError):
        return 0.0
    return float(value.quantize(_TWO_DP, rounding=ROUND_HALF_UP))


@router.get("/health")
async def health_check():
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message": "Stripe Shopify Checkout API is running",
    }


@router.get("/config")
async def get_public_config(settings: Settings = Depends(get_settings)):
    data: Dict[str, Any] = {"publishableKey": settings.STRIPE_PUBLISHABLE_KEY or ""}
    if settings.GA_MEASUREMENT_ID:
        data["gaMeasurementId"] = settings.GA_MEASUREMENT_ID
    return data


@router.get("/product/{product_id}", response_model=ProductDetail)
async def get_product(
    product_id: str,
    stripe_client: Optional[StripeAPIClient] = Depends(get_stripe_client),
):
    if stripe_client is None:
        raise ServiceUnavailable("Server missing Stripe configuration")
    if not product_id.strip():
        raise HTTPException(status_code=400, detail="Product ID is required")

    try:
        product = await stripe_client.retrieve_product(product_id)
        prices = await stripe_client.list_prices(product_id, active=True, limit=1)
    except stripe.StripeError as exc:
        logger.error("[STRIPE] product fetch failed: product=%s error=%s", product_id, exc)
        raise HTTPException(status_code=500, detail="Failed to fetch product details") from exc

    price = prices[0] if prices else None
    images = product.get("images") or []
    return ProductDetail(
        id=product.get("id") or product_id,
        name=product.get("name"),
        description=product.get("description"),
        image=images[0] if images else None,
        price=_major_units(price.get("unit_amount")) if price else 0,
        currency=(price.get("currency") if price else None) or "usd",
        metadata=product.get("metadata") or {},
    )
