"""Maps Stripe charges onto Shopify draft order line items, notes and attributes."""
from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote

from checkout_bridge.core.config import Settings
from checkout_bridge.schemas.orders import (
    CatalogLine,
    ChargeOutcome,
    CustomLine,
    LineItem,
    NoteAttribute,
    OrderDraftPayload,
    Plan,
)

logger = logging.getLogger(__name__)

_CENTS = Decimal(100)
_TWO_DP = Decimal("0.01")
# encodeURIComponent leaves these unescaped
_URI_SAFE = "-_.!~*'()"

ATTRIBUTION_KEYS = ("utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content", "utm_id")

LINE_TITLES: Dict[Tuple[Plan, bool], str] = {
    (Plan.YEARLY, True): "Platinum Membership Yearly - Free Trial",
    (Plan.MONTHLY, True): "Platinum Membership Monthly - Free Trial",
    (Plan.YEARLY, False): "Platinum Membership Yearly",
    (Plan.MONTHLY, False): "Platinum Membership Monthly (after trial)",
}


def resolve_plan(value: Any) -> Plan:
    """Plan from metadata; missing or unrecognised values fall back to yearly."""

    if isinstance(value, Plan):
        return value
    raw = str(value).strip().lower() if value is not None else ""
    try:
        return Plan(raw)
    except ValueError:
        if raw:
            logger.warning("[WEBHOOK] unknown plan %r in metadata, defaulting to yearly", value)
        return Plan.YEARLY


def format_amount(amount_cents: Any) -> str:
    """Smallest currency unit -> fixed two-decimal string ("9999" -> "99.99")."""

    try:
        cents = Decimal(int(amount_cents or 0))
    except (InvalidOperation, TypeError, ValueError):
        logger.warning("[WEBHOOK] invalid amount %r, treating as 0", amount_cents)
        cents = Decimal(0)
    return str((cents / _CENTS).quantize(_TWO_DP, rounding=ROUND_HALF_UP))


def extract_attribution(metadata: Optional[Mapping[str, Any]]) -> "OrderedDict[str, str]":
    """Allow-listed attribution fields, trimmed, blanks dropped."""

    found: "OrderedDict[str, str]" = OrderedDict()
    for key in ATTRIBUTION_KEYS:
        value = (metadata or {}).get(key)
        if isinstance(value, str) and value.strip():
            found[key] = value.strip()
    return found


def _metadata_value(metadata: Optional[Mapping[str, Any]], key: str) -> str:
    value = (metadata or {}).get(key)
    if value is None:
        return ""
    return str(value).strip()


class _AttributeBuilder:
    """Keeps note attribute keys unique; the first value for a key wins."""

    def __init__(self) -> None:
        self._values: "OrderedDict[str, str]" = OrderedDict()

    def add(self, key: str, value: Any) -> None:
        if key in self._values:
            return
        self._values[key] = "" if value is None else str(value)

    def build(self) -> List[NoteAttribute]:
        return [NoteAttribute(key=key, value=value) for key, value in self._values.items()]


class LineItemMapper:
    def __init__(self, settings: Settings):
        self.settings = settings

    def resolve_charge(self, plan: Any, amount_cents: Any, currency: Optional[str]) -> ChargeOutcome:
        currency_code = str(currency).strip().upper() if currency else self.settings.DEFAULT_CURRENCY
        return ChargeOutcome(
            plan=resolve_plan(plan),
            amount_formatted=format_amount(amount_cents),
            currency_code=currency_code,
        )

    def configured_variant(self, plan: Plan) -> Optional[str]:
        if plan is Plan.MONTHLY:
            return self.settings.SHOPIFY_VARIANT_MONTHLY or None
        return self.settings.SHOPIFY_VARIANT_YEARLY or None

    def map_line_items(self, charge: ChargeOutcome, variant_ref: Optional[str] = None) -> List[LineItem]:
        """Trials always get a titled custom line.

        Paid charges use the catalog variant (metadata first, then configuration) with the
        charged amount as price override, or a titled custom line when no variant is known.
        """

        if charge.is_trial:
            return [CustomLine(title=LINE_TITLES[(charge.plan, True)], price=charge.amount_formatted)]

        variant = (variant_ref or "").strip() or self.configured_variant(charge.plan)
        if variant:
            return [CatalogLine(variant_id=variant, price_override=charge.amount_formatted)]
        return [CustomLine(title=LINE_TITLES[(charge.plan, False)], price=charge.amount_formatted)]

    def build_session_note(
        self,
        session_id: str,
        plan: Plan,
        metadata: Optional[Mapping[str, Any]],
    ) -> Tuple[str, List[NoteAttribute]]:
        product_id = _metadata_value(metadata, "product_id")
        variant_id = _metadata_value(metadata, "variant_id")
        attribution = extract_attribution(metadata)

        attrs = _AttributeBuilder()
        attrs.add("stripe_session_id", session_id)
        attrs.add("plan", plan.value)
        if product_id:
            attrs.add("product_id", product_id)
        if variant_id:
            attrs.add("variant_id", variant_id)
        for key, value in attribution.items():
            attrs.add(key, value)

        note = f"Stripe session: {session_id}. Plan: {plan.value}."
        note += _catalog_note(product_id, variant_id)
        if attribution:
            utm_line = "&".join(f"{key}={quote(value, safe=_URI_SAFE)}" for key, value in attribution.items())
            note += f" UTM: {utm_line}"
        return note, attrs.build()

    def build_invoice_note(
        self,
        invoice_id: str,
        subscription_id: Optional[str],
        plan: Plan,
        metadata: Optional[Mapping[str, Any]],
    ) -> Tuple[str, List[NoteAttribute]]:
        product_id = _metadata_value(metadata, "product_id")
        variant_id = _metadata_value(metadata, "variant_id")
        attribution = extract_attribution(metadata)

        attrs = _AttributeBuilder()
        attrs.add("stripe_invoice_id", invoice_id)
        attrs.add("stripe_subscription_id", subscription_id or "")
        attrs.add("plan", plan.value)
        attrs.add("order_type", "recurring")
        if product_id:
            attrs.add("product_id", product_id)
        if variant_id:
            attrs.add("variant_id", variant_id)
        for key, value in attribution.items():
            attrs.add(key, value)

        note = (
            f"Recurring subscription order. Invoice: {invoice_id}. "
            f"Subscription: {subscription_id or ''}. Plan: {plan.value}. Order type: recurring."
        )
        note += _catalog_note(product_id, variant_id)
        return note, attrs.build()

    def build_payload(
        self,
        line_items: List[LineItem],
        note: str,
        note_attributes: List[NoteAttribute],
        email: Optional[str],
    ) -> OrderDraftPayload:
        return OrderDraftPayload(
            line_items=line_items,
            note=note,
            note_attributes=note_attributes,
            email=email or None,
            tags=self.settings.SHOPIFY_ORDER_TAGS or None,
            source_name=self.settings.SHOPIFY_SOURCE_NAME or None,
        )


def _catalog_note(product_id: str, variant_id: str) -> str:
    note = ""
    if product_id:
        note += f" Product ID: {product_id}."
    if variant_id:
        note += f" Variant ID: {variant_id}."
    return note
