"""Routes verified Stripe events to a handling path."""
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class EventCategory(str, Enum):
    CANCELLATION = "cancellation"
    INITIAL_PURCHASE = "initial_purchase"
    RECURRING_CHARGE = "recurring_charge"
    IGNORED = "ignored"


SUBSCRIPTION_DELETED = "customer.subscription.deleted"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
CHECKOUT_COMPLETED = "checkout.session.completed"
INVOICE_PAID = "invoice.paid"

SUBSCRIPTION_CANCEL_STATES = {"canceled", "cancelled", "unpaid", "incomplete_expired"}

RECURRING_BILLING_REASONS = {"subscription_cycle", "subscription_create"}


def event_object(event: Dict[str, Any]) -> Dict[str, Any]:
    data = event.get("data") if isinstance(event, dict) else None
    obj = data.get("object") if isinstance(data, dict) else None
    return obj if isinstance(obj, dict) else {}


def invoice_subscription_ref(invoice: Dict[str, Any]) -> Any:
    """Subscription on an invoice: top-level field, or parent.subscription_details on newer API versions."""

    subscription = invoice.get("subscription")
    if subscription:
        return subscription
    parent = invoice.get("parent")
    if isinstance(parent, dict):
        details = parent.get("subscription_details")
        if isinstance(details, dict) and details.get("subscription"):
            return details.get("subscription")
    return None


def reference_id(ref: Any) -> Optional[str]:
    """Stripe reference that may be an id string or an expanded object."""

    if isinstance(ref, dict):
        ref = ref.get("id")
    if ref is None:
        return None
    ref = str(ref).strip()
    return ref or None


def is_recurring_invoice(invoice: Dict[str, Any]) -> bool:
    """Invoice tied to a subscription, with a positive paid amount and a subscription billing reason."""

    if not reference_id(invoice_subscription_ref(invoice)):
        return False
    amount_paid = invoice.get("amount_paid")
    if not isinstance(amount_paid, (int, float)) or amount_paid <= 0:
        return False
    return invoice.get("billing_reason") in RECURRING_BILLING_REASONS


def is_cancelled_subscription(subscription: Dict[str, Any]) -> bool:
    status = str(subscription.get("status") or "").strip().lower()
    return status in SUBSCRIPTION_CANCEL_STATES


def classify(event: Dict[str, Any]) -> EventCategory:
    event_type = str(event.get("type") or "").strip() if isinstance(event, dict) else ""
    obj = event_object(event)

    if event_type == SUBSCRIPTION_DELETED:
        return EventCategory.CANCELLATION
    if event_type == SUBSCRIPTION_UPDATED:
        return EventCategory.CANCELLATION if is_cancelled_subscription(obj) else EventCategory.IGNORED
    if event_type == CHECKOUT_COMPLETED:
        return EventCategory.INITIAL_PURCHASE
    if event_type == INVOICE_PAID:
        return EventCategory.RECURRING_CHARGE if is_recurring_invoice(obj) else EventCategory.IGNORED
    return EventCategory.IGNORED
