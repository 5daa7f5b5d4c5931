"""
Stripe webhook processing

Turns verified Stripe events into Shopify orders:
- checkout.session.completed -> initial order (+ optional Loop subscription)
- invoice.paid (subscription renewals) -> recurring order
- subscription deleted / cancelled -> Loop cancellation
Redelivered events are processed again; there is no seen-event store.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from checkout_bridge.core.config import Settings
from checkout_bridge.core.responses import DraftCreateFailed, UpstreamFetchFailed
from checkout_bridge.schemas.orders import ChargeOutcome, OrderDraftPayload, OrderResult, Plan, SyncResult
from checkout_bridge.services.event_classifier import (
    EventCategory,
    classify,
    event_object,
    invoice_subscription_ref,
    is_recurring_invoice,
    reference_id,
)
from checkout_bridge.services.line_item_mapper import LineItemMapper, resolve_plan
from checkout_bridge.services.loop_sync_adapter import LoopSyncAdapter
from checkout_bridge.services.order_writer import OrderWriter
from checkout_bridge.services.shopify_admin_client import ShopifyAdminClient
from checkout_bridge.services.stripe_api_client import StripeAPIClient

logger = logging.getLogger(__name__)


@dataclass
class WebhookOutcome:
    category: EventCategory
    status: str  # ignored | skipped | processed
    event_id: Optional[str] = None
    order: Optional[OrderResult] = None
    sync: Optional[SyncResult] = None
    reason: Optional[str] = None


def _get(d: Any, *keys: str, default=None):
    cur = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


class WebhookProcessor:
    def __init__(
        self,
        settings: Settings,
        stripe_client: StripeAPIClient,
        line_item_mapper: LineItemMapper,
        order_writer: Optional[OrderWriter] = None,
        shopify_client: Optional[ShopifyAdminClient] = None,
        loop_adapter: Optional[LoopSyncAdapter] = None,
    ):
        self.settings = settings
        self.stripe = stripe_client
        self.mapper = line_item_mapper
        self.order_writer = order_writer
        self.shopify = shopify_client
        self.loop = loop_adapter

    async def process(self, event: Dict[str, Any]) -> WebhookOutcome:
        event_id = event.get("id")
        event_type = event.get("type")
        category = classify(event)
        logger.info("[WEBHOOK] event=%s id=%s category=%s", event_type, event_id, category.value)

        if category is EventCategory.IGNORED:
            return WebhookOutcome(category, "ignored", event_id)

        if category is EventCategory.CANCELLATION:
            return await self._handle_cancellation(event_id, event_object(event))

        if self.order_writer is None:
            logger.warning("[WEBHOOK] Shopify not configured, skipping draft order (event %s)", event_id)
            return WebhookOutcome(category, "skipped", event_id, reason="shopify_not_configured")

        if category is EventCategory.INITIAL_PURCHASE:
            return await self._handle_checkout_completed(event_id, event_object(event))
        return await self._handle_invoice_paid(event_id, event_object(event))

    async def _handle_cancellation(self, event_id: Optional[str], subscription: Dict[str, Any]) -> WebhookOutcome:
        if self.loop is None or not self.loop.enabled:
            return WebhookOutcome(EventCategory.CANCELLATION, "skipped", event_id, reason="sync_disabled")

        email = await self._resolve_customer_email(subscription.get("customer"))
        if not email:
            logger.warning("[LOOP] no customer email for cancelled subscription %s", subscription.get("id"))
            return WebhookOutcome(EventCategory.CANCELLATION, "skipped", event_id, reason="no_email")

        sync = await self._run_sync(self.loop.cancel_subscription(email), "cancel")
        return WebhookOutcome(EventCategory.CANCELLATION, "processed", event_id, sync=sync)

    async def _handle_checkout_completed(self, event_id: Optional[str], obj: Dict[str, Any]) -> WebhookOutcome:
        session_id = obj.get("id")
        try:
            session = await self.stripe.retrieve_checkout_session(session_id, expand=["line_items"])
        except stripe.StripeError as exc:
            logger.error("[WEBHOOK] failed to retrieve session %s: %s", session_id, exc)
            raise UpstreamFetchFailed("Failed to retrieve session") from exc

        metadata = session.get("metadata") or {}
        email = session.get("customer_email") or _get(session, "customer_details", "email")
        charge = self.mapper.resolve_charge(metadata.get("plan"), session.get("amount_total"), session.get("currency"))
        note, attributes = self.mapper.build_session_note(session_id, charge.plan, metadata)
        payload = self.mapper.build_payload(
            self.mapper.map_line_items(charge, metadata.get("variant_id")),
            note,
            attributes,
            email,
        )

        order = await self._write_order(payload, charge)
        sync = await self._sync_purchase(email, charge, order)
        return WebhookOutcome(EventCategory.INITIAL_PURCHASE, "processed", event_id, order=order, sync=sync)

    async def _handle_invoice_paid(self, event_id: Optional[str], obj: Dict[str, Any]) -> WebhookOutcome:
        invoice_id = obj.get("id")
        try:
            invoice = await self.stripe.retrieve_invoice(invoice_id, expand=["customer"])
        except stripe.StripeError as exc:
            logger.error("[WEBHOOK] failed to retrieve invoice %s: %s", invoice_id, exc)
            raise UpstreamFetchFailed("Failed to retrieve invoice") from exc

        if not is_recurring_invoice(invoice):
            logger.info("[WEBHOOK] invoice %s is not a paid subscription renewal, ignoring", invoice_id)
            return WebhookOutcome(EventCategory.RECURRING_CHARGE, "ignored", event_id, reason="not_recurring")

        subscription_ref = invoice_subscription_ref(invoice)
        subscription_id = reference_id(subscription_ref)
        if isinstance(subscription_ref, dict):
            subscription = subscription_ref
        else:
            try:
                subscription = await self.stripe.retrieve_subscription(subscription_id)
            except stripe.StripeError as exc:
                logger.error("[WEBHOOK] failed to retrieve subscription %s: %s", subscription_id, exc)
                raise UpstreamFetchFailed("Failed to retrieve subscription") from exc

        metadata = subscription.get("metadata") or {}
        plan = self._plan_for_subscription(subscription)
        email = invoice.get("customer_email") or _get(invoice, "customer", "email")
        charge = self.mapper.resolve_charge(plan, invoice.get("amount_paid"), invoice.get("currency"))
        note, attributes = self.mapper.build_invoice_note(invoice_id, subscription_id, charge.plan, metadata)
        payload = self.mapper.build_payload(
            self.mapper.map_line_items(charge, metadata.get("variant_id")),
            note,
            attributes,
            email,
        )

        order = await self._write_order(payload, charge)
        return WebhookOutcome(EventCategory.RECURRING_CHARGE, "processed", event_id, order=order)

    def _plan_for_subscription(self, subscription: Dict[str, Any]) -> Plan:
        """metadata.plan, else the first item's price id against configured prices, else yearly."""

        plan = _get(subscription, "metadata", "plan")
        if plan:
            return resolve_plan(plan)

        items = _get(subscription, "items", "data", default=[]) or []
        price_id = _get(items[0], "price", "id") if items else None
        if price_id and price_id == self.settings.STRIPE_PRICE_MONTHLY:
            return Plan.MONTHLY
        return Plan.YEARLY

    async def _write_order(self, payload: OrderDraftPayload, charge: ChargeOutcome) -> OrderResult:
        result = await self.order_writer.create_and_complete(payload, charge.currency_code)
        if not result.ok:
            raise DraftCreateFailed("Failed to create draft order")
        if not result.completed:
            logger.warning(
                "[WEBHOOK] draft %s created but not completed: %s",
                result.draft_order_id,
                result.complete_error,
            )
        return result

    async def _sync_purchase(self, email: Optional[str], charge: ChargeOutcome, order: OrderResult) -> Optional[SyncResult]:
        if self.loop is None or not self.loop.enabled:
            return None
        if not email or not order.order_id:
            logger.info("[LOOP] skipping create: email=%s order=%s", bool(email), order.order_id)
            return None

        customer_id = order.customer_id
        if not customer_id and self.shopify is not None:
            customer_id = (
                await self.shopify.get_customer_id_from_order(order.order_id)
                or await self.shopify.get_customer_id_by_email(email)
            )
        if not customer_id:
            logger.warning("[LOOP] no Shopify customer ID for order %s, skipping create", order.order_id)
            return SyncResult(ok=False, error="No Shopify customer ID")

        return await self._run_sync(
            self.loop.create_subscription(email, charge.plan, customer_id, order.order_id, charge.currency_code),
            "create",
        )

    async def _resolve_customer_email(self, customer_ref: Any) -> Optional[str]:
        if isinstance(customer_ref, dict) and customer_ref.get("email") and not customer_ref.get("deleted"):
            return customer_ref.get("email")

        customer_id = reference_id(customer_ref)
        if not customer_id:
            return None
        try:
            customer = await self.stripe.retrieve_customer(customer_id)
        except stripe.StripeError as exc:
            logger.error("[LOOP] customer lookup for cancellation failed: %s", exc)
            return None
        if customer.get("deleted"):
            return None
        return customer.get("email") or None

    async def _run_sync(self, call, action: str) -> SyncResult:
        """Sync results are logged only; they never change the webhook response."""

        try:
            result = await call
        except Exception as exc:
            # last-resort guard: the order is already written, so no sync error reaches the response
            logger.error("[LOOP] %s subscription raised unexpectedly: %s", action, exc, exc_info=True)
            return SyncResult(ok=False, error=str(exc))
        if not result.ok:
            logger.error("[LOOP] %s subscription failed: %s", action, result.error)
        return result
