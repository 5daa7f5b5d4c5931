"""FastAPI 의존성 함수 (테스트에서는 app.dependency_overrides로 교체)"""
from typing import Optional

from checkout_bridge.core.config import Settings
from checkout_bridge.core.factory import ServiceFactory
from checkout_bridge.services.signature_verifier import SignatureVerifier
from checkout_bridge.services.stripe_api_client import StripeAPIClient
from checkout_bridge.services.webhook_processor import WebhookProcessor


def get_settings() -> Settings:
    return ServiceFactory.get_settings()


def get_stripe_client() -> Optional[StripeAPIClient]:
    return ServiceFactory.get_stripe_client()


def get_signature_verifier() -> Optional[SignatureVerifier]:
    return ServiceFactory.get_signature_verifier()


def get_webhook_processor() -> Optional[WebhookProcessor]:
    return ServiceFactory.get_webhook_processor()
