"""Stripe 웹훅 엔드포인트 테스트"""
import hashlib
import hmac
import json
import time
from typing import Any, Dict, List

import pytest
from fastapi.testclient import TestClient

from checkout_bridge.core.dependencies import get_signature_verifier, get_webhook_processor
from checkout_bridge.core.responses import DraftCreateFailed, UpstreamFetchFailed
from checkout_bridge.main import create_app
from checkout_bridge.schemas.orders import OrderResult
from checkout_bridge.services.event_classifier import EventCategory
from checkout_bridge.services.line_item_mapper import LineItemMapper
from checkout_bridge.services.signature_verifier import SignatureVerifier
from checkout_bridge.services.webhook_processor import WebhookOutcome, WebhookProcessor

SECRET = "whsec_router_test"
URL = "/api/stripe-webhook"


def _signed(event: Dict[str, Any]):
    raw = json.dumps(event).encode("utf-8")
    timestamp = int(time.time())
    digest = hmac.new(SECRET.encode("utf-8"), f"{timestamp}.".encode("utf-8") + raw, hashlib.sha256).hexdigest()
    return raw, f"t={timestamp},v1={digest}"


class RecordingProcessor:
    """처리 호출을 기록하는 더블 (raises가 있으면 해당 예외 발생)"""

    def __init__(self, raises: Exception = None):
        self.events: List[Dict[str, Any]] = []
        self.raises = raises

    async def process(self, event):
        self.events.append(event)
        if self.raises:
            raise self.raises
        return WebhookOutcome(EventCategory.IGNORED, "ignored", event.get("id"))


@pytest.fixture
def client_with(make_settings):
    def _build(processor=None, verifier=None):
        app = create_app(make_settings())
        app.dependency_overrides[get_signature_verifier] = lambda: verifier
        app.dependency_overrides[get_webhook_processor] = lambda: processor
        return TestClient(app)

    return _build


def test_missing_configuration_returns_503(client_with):
    client = client_with(processor=None, verifier=None)

    response = client.post(URL, content=b"{}", headers={"Stripe-Signature": "t=1,v1=x"})

    assert response.status_code == 503
    assert "error" in response.json()


@pytest.mark.parametrize("header", [None, "", "t=1,v1=deadbeef", "nonsense"])
def test_bad_signature_is_rejected_without_processing(client_with, header):
    processor = RecordingProcessor()
    client = client_with(processor=processor, verifier=SignatureVerifier(SECRET))
    raw, _ = _signed({"id": "evt_1", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}})
    headers = {"Stripe-Signature": header} if header is not None else {}

    response = client.post(URL, content=raw, headers=headers)

    assert response.status_code == 400
    assert response.json()["error"]
    assert processor.events == []


def test_valid_event_is_acknowledged(client_with):
    processor = RecordingProcessor()
    client = client_with(processor=processor, verifier=SignatureVerifier(SECRET))
    raw, header = _signed({"id": "evt_2", "type": "payment_intent.created", "data": {"object": {}}})

    response = client.post(URL, content=raw, headers={"Stripe-Signature": header, "Content-Type": "application/json"})

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert processor.events[0]["id"] == "evt_2"


@pytest.mark.parametrize(
    "error, message",
    [
        (DraftCreateFailed(), "Failed to create draft order"),
        (UpstreamFetchFailed("Failed to retrieve session"), "Failed to retrieve session"),
    ],
)
def test_processing_failures_return_500(client_with, error, message):
    client = client_with(processor=RecordingProcessor(raises=error), verifier=SignatureVerifier(SECRET))
    raw, header = _signed({"id": "evt_3", "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}})

    response = client.post(URL, content=raw, headers={"Stripe-Signature": header})

    assert response.status_code == 500
    assert response.json() == {"error": message}


def test_get_is_not_allowed(client_with):
    client = client_with(processor=RecordingProcessor(), verifier=SignatureVerifier(SECRET))

    response = client.get(URL)

    assert response.status_code == 405
    assert "error" in response.json()


class _Stripe:
    def __init__(self):
        self.calls = []

    async def retrieve_checkout_session(self, session_id, expand=None):
        self.calls.append(session_id)
        return {
            "id": session_id,
            "amount_total": 9999,
            "currency": "aud",
            "customer_email": "buyer@example.com",
            "metadata": {"plan": "yearly", "utm_source": "google"},
        }


class _Writer:
    def __init__(self):
        self.payloads = []

    async def create_and_complete(self, payload, currency_code="AUD"):
        self.payloads.append(payload)
        return OrderResult(ok=True, draft_order_id="gid://shopify/DraftOrder/1", order_id="42", completed=True)


def test_checkout_completed_end_to_end(client_with, make_settings):
    """서명 검증부터 주문 생성까지 한 번의 요청으로 처리된다"""

    settings = make_settings(STRIPE_SECRET_KEY="sk_test")
    stripe, writer = _Stripe(), _Writer()
    processor = WebhookProcessor(settings, stripe, LineItemMapper(settings), order_writer=writer)
    client = client_with(processor=processor, verifier=SignatureVerifier(SECRET))
    raw, header = _signed({"id": "evt_4", "type": "checkout.session.completed", "data": {"object": {"id": "cs_9"}}})

    response = client.post(URL, content=raw, headers={"Stripe-Signature": header})

    assert response.status_code == 200
    assert response.json() == {"received": True}
    assert stripe.calls == ["cs_9"]
    assert len(writer.payloads) == 1
    assert writer.payloads[0].attribute("utm_source") == "google"
