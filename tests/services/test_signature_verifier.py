"""SignatureVerifier 단위 테스트"""
import hashlib
import hmac
import json
import time

import pytest

from checkout_bridge.core.responses import InvalidSignature, UnreadableBody
from checkout_bridge.services.signature_verifier import SignatureVerifier

SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = SECRET, timestamp: int = None) -> str:
    """Stripe-Signature 헤더 생성 (t=<ts>,v1=<hmac>)"""

    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def test_valid_signature_returns_parsed_event():
    raw = b'{"id": "evt_1",  "type": "checkout.session.completed", "data": {"object": {"id": "cs_1"}}}'

    event = SignatureVerifier(SECRET).verify(raw, sign(raw))

    assert event["id"] == "evt_1"
    assert event["data"]["object"]["id"] == "cs_1"


def test_reserialised_body_fails_verification():
    """서명은 원본 바이트 기준이므로 재직렬화된 본문은 거부된다"""

    raw = b'{"type":  "invoice.paid", "id": "evt_2"}'
    header = sign(raw)
    reserialised = json.dumps(json.loads(raw)).encode("utf-8")

    with pytest.raises(InvalidSignature):
        SignatureVerifier(SECRET).verify(reserialised, header)


@pytest.mark.parametrize("header", [None, "", "garbage", "t=1,v1=deadbeef"])
def test_missing_or_malformed_header_is_rejected(header):
    with pytest.raises(InvalidSignature):
        SignatureVerifier(SECRET).verify(b'{"type": "invoice.paid"}', header)


def test_wrong_secret_is_rejected():
    raw = b'{"type": "invoice.paid"}'

    with pytest.raises(InvalidSignature):
        SignatureVerifier(SECRET).verify(raw, sign(raw, secret="whsec_other"))


def test_stale_timestamp_is_rejected():
    raw = b'{"type": "invoice.paid"}'
    header = sign(raw, timestamp=int(time.time()) - 3600)

    with pytest.raises(InvalidSignature):
        SignatureVerifier(SECRET, tolerance=300).verify(raw, header)


def test_signed_but_unparseable_body_is_unreadable():
    raw = b"not json"

    with pytest.raises(UnreadableBody):
        SignatureVerifier(SECRET).verify(raw, sign(raw))


def test_non_utf8_body_is_unreadable():
    raw = b"\xff\xfe"

    with pytest.raises(UnreadableBody):
        SignatureVerifier(SECRET).verify(raw, sign(raw))


def test_blank_secret_is_rejected():
    with pytest.raises(ValueError):
        SignatureVerifier(" ")
