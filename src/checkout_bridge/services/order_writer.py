"""Shopify draft order writer: create a draft, then complete it into an order."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from checkout_bridge.schemas.orders import CatalogLine, CustomLine, LineItem, OrderDraftPayload, OrderResult
from checkout_bridge.services.shopify_admin_client import ShopifyAdminClient, ShopifyAPIError

logger = logging.getLogger(__name__)

DEFAULT_LINE_TITLE = "Subscription"

DRAFT_ORDER_CREATE = """
mutation draftOrderCreate($input: DraftOrderInput!) {
  draftOrderCreate(input: $input) {
    draftOrder { id }
    userErrors { message field }
  }
}
"""

DRAFT_ORDER_COMPLETE = """
mutation draftOrderComplete($id: ID!) {
  draftOrderComplete(id: $id) {
    draftOrder { id order { id legacyResourceId customer { id legacyResourceId } } }
    userErrors { message field }
  }
}
"""


def variant_gid(variant_id: str) -> str:
    variant = str(variant_id).strip()
    if variant.startswith("gid://"):
        return variant
    return f"gid://shopify/ProductVariant/{variant}"


def _line_item_input(item: LineItem, currency_code: str) -> Dict[str, Any]:
    if isinstance(item, CatalogLine):
        return {
            "variantId": variant_gid(item.variant_id),
            "quantity": item.quantity,
            "priceOverride": {"amount": item.price_override, "currencyCode": currency_code},
        }
    if isinstance(item, CustomLine):
        return {
            "title": item.title or DEFAULT_LINE_TITLE,
            "quantity": item.quantity,
            "originalUnitPriceWithCurrency": {"amount": item.price, "currencyCode": currency_code},
        }
    raise TypeError(f"unsupported line item: {type(item).__name__}")


def _split_tags(tags: Optional[str]) -> Optional[List[str]]:
    if not tags:
        return None
    parsed = [tag.strip() for tag in str(tags).split(",") if tag.strip()]
    return parsed or None


def build_draft_order_input(payload: OrderDraftPayload, currency_code: str) -> Dict[str, Any]:
    """OrderDraftPayload -> DraftOrderInput"""

    custom_attributes = [{"key": attr.key, "value": str(attr.value)} for attr in payload.note_attributes]
    return {
        "lineItems": [_line_item_input(item, currency_code) for item in payload.line_items],
        "email": payload.email or None,
        "note": payload.note or None,
        "customAttributes": custom_attributes or None,
        "tags": _split_tags(payload.tags),
        "sourceName": payload.source_name or None,
    }


def _user_error_message(errors: Any) -> Optional[str]:
    if not isinstance(errors, list) or not errors:
        return None
    return "; ".join(str(err.get("message") if isinstance(err, dict) else err) for err in errors)


def _id_or_none(node: Any) -> Optional[str]:
    if not isinstance(node, dict):
        return None
    value = node.get("legacyResourceId") or node.get("id")
    return str(value) if value is not None else None


class OrderWriter:
    """Two-phase order write against the Shopify Admin API.

    Only phase one (draft creation) decides ``ok``. A completion failure leaves the
    draft in place for manual completion and is reported via ``completed=False``.
    Calling this twice with the same payload creates two drafts.
    """

    def __init__(self, shopify_client: ShopifyAdminClient):
        self.shopify = shopify_client

    async def create_and_complete(self, payload: OrderDraftPayload, currency_code: str = "AUD") -> OrderResult:
        currency = (currency_code or "AUD").upper()
        draft_input = build_draft_order_input(payload, currency)

        try:
            data = await self.shopify.graphql(DRAFT_ORDER_CREATE, {"input": draft_input})
        except ShopifyAPIError as exc:
            logger.error("[SHOPIFY] draft order create failed: status=%s error=%s", exc.status_code, exc)
            return OrderResult(ok=False, error=str(exc))

        create_data = data.get("draftOrderCreate") or {}
        message = _user_error_message(create_data.get("userErrors"))
        if message:
            logger.error("[SHOPIFY] draftOrderCreate userErrors: %s", message)
            return OrderResult(ok=False, error=message)

        draft_gid = (create_data.get("draftOrder") or {}).get("id")
        if not draft_gid:
            logger.error("[SHOPIFY] draftOrderCreate returned no draft order id")
            return OrderResult(ok=False, error="No draft order id returned")

        logger.info("[SHOPIFY] draft order created: %s", draft_gid)
        return await self._complete(str(draft_gid))

    async def _complete(self, draft_gid: str) -> OrderResult:
        try:
            data = await self.shopify.graphql(DRAFT_ORDER_COMPLETE, {"id": draft_gid})
        except ShopifyAPIError as exc:
            logger.error(
                "[SHOPIFY] draft order complete failed, draft left for manual completion: draft=%s error=%s",
                draft_gid,
                exc,
            )
            return OrderResult(ok=True, draft_order_id=draft_gid, completed=False, complete_error=str(exc))

        complete_data = data.get("draftOrderComplete") or {}
        message = _user_error_message(complete_data.get("userErrors"))
        if message:
            logger.error(
                "[SHOPIFY] draftOrderComplete userErrors, draft left for manual completion: draft=%s error=%s",
                draft_gid,
                message,
            )
            return OrderResult(ok=True, draft_order_id=draft_gid, completed=False, complete_error=message)

        order = (complete_data.get("draftOrder") or {}).get("order")
        order_id = _id_or_none(order)
        customer_id = _id_or_none(order.get("customer")) if isinstance(order, dict) else None
        logger.info("[SHOPIFY] draft order completed: draft=%s order=%s", draft_gid, order_id)
        return OrderResult(
            ok=True,
            draft_order_id=draft_gid,
            order_id=order_id,
            customer_id=customer_id,
            completed=True,
        )
