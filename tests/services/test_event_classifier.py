"""이벤트 분류 단위 테스트"""
import pytest

from checkout_bridge.services.event_classifier import (
    EventCategory,
    classify,
    invoice_subscription_ref,
    is_recurring_invoice,
    reference_id,
)


def _event(event_type, obj=None):
    return {"id": "evt_1", "type": event_type, "data": {"object": obj or {}}}


def _invoice(**overrides):
    invoice = {"id": "in_1", "subscription": "sub_1", "amount_paid": 9999, "billing_reason": "subscription_cycle"}
    invoice.update(overrides)
    return invoice


@pytest.mark.parametrize(
    "event, expected",
    [
        (_event("checkout.session.completed", {"id": "cs_1"}), EventCategory.INITIAL_PURCHASE),
        (_event("customer.subscription.deleted", {"id": "sub_1"}), EventCategory.CANCELLATION),
        (_event("customer.subscription.updated", {"status": "canceled"}), EventCategory.CANCELLATION),
        (_event("customer.subscription.updated", {"status": "unpaid"}), EventCategory.CANCELLATION),
        (_event("customer.subscription.updated", {"status": "active"}), EventCategory.IGNORED),
        (_event("invoice.paid", _invoice()), EventCategory.RECURRING_CHARGE),
        (_event("invoice.paid", _invoice(amount_paid=0)), EventCategory.IGNORED),
        (_event("payment_intent.succeeded", {"id": "pi_1"}), EventCategory.IGNORED),
        ({"type": "checkout.session.completed"}, EventCategory.INITIAL_PURCHASE),
    ],
)
def test_classify(event, expected):
    assert classify(event) is expected


@pytest.mark.parametrize(
    "invoice, expected",
    [
        (_invoice(), True),
        (_invoice(billing_reason="subscription_create"), True),
        (_invoice(billing_reason="manual"), False),
        (_invoice(billing_reason=None), False),
        (_invoice(subscription=None), False),
        (_invoice(amount_paid="9999"), False),
        (_invoice(amount_paid=-1), False),
        (
            _invoice(subscription=None, parent={"subscription_details": {"subscription": "sub_9"}}),
            True,
        ),
    ],
)
def test_is_recurring_invoice(invoice, expected):
    assert is_recurring_invoice(invoice) is expected


@pytest.mark.parametrize("event_type", [123, None, {"nested": "checkout.session.completed"}, ""])
def test_non_string_type_is_ignored(event_type):
    """type 필드가 문자열이 아니어도 예외 없이 무시된다"""

    assert classify({"id": "evt_1", "type": event_type, "data": {"object": {}}}) is EventCategory.IGNORED


def test_reference_helpers():
    assert reference_id({"id": " sub_1 "}) == "sub_1"
    assert reference_id("cus_1") == "cus_1"
    assert reference_id("") is None
    assert invoice_subscription_ref({"parent": {"subscription_details": {"subscription": "sub_2"}}}) == "sub_2"
