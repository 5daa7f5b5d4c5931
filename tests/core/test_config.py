"""Settings 및 서비스 팩토리 구성 테스트"""
import pytest

from checkout_bridge.core.factory import ServiceFactory
from checkout_bridge.services.webhook_processor import WebhookProcessor


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("ON", True), ("no", False), ("", False)])
def test_loop_flag_parsing(make_settings, raw, expected):
    assert make_settings(LOOP_SYNC_ENABLED=raw).LOOP_SYNC_ENABLED is expected


def test_shop_domain_and_currency_are_normalized(make_settings):
    settings = make_settings(SHOPIFY_SHOP_DOMAIN="https://bridge.myshopify.com/", DEFAULT_CURRENCY="usd")

    assert settings.SHOPIFY_SHOP_DOMAIN == "bridge.myshopify.com"
    assert settings.DEFAULT_CURRENCY == "USD"


def test_defaults(make_settings):
    settings = make_settings()

    assert settings.SHOPIFY_API_VERSION == "2024-04"
    assert settings.STRIPE_TRIAL_PERIOD_DAYS == 7
    assert settings.DEFAULT_CURRENCY == "AUD"
    assert settings.LOOP_SYNC_ENABLED is False


def test_factory_without_configuration_registers_nothing_optional(make_settings):
    settings = make_settings(STRIPE_SECRET_KEY=None, STRIPE_WEBHOOK_SECRET=None, SHOPIFY_ACCESS_TOKEN=None)

    ServiceFactory.configure_dependencies(settings)

    assert ServiceFactory.get_settings() is settings
    assert ServiceFactory.get_stripe_client() is None
    assert ServiceFactory.get_signature_verifier() is None
    assert ServiceFactory.get_webhook_processor() is None


def test_factory_wires_full_pipeline(make_settings):
    settings = make_settings(
        STRIPE_SECRET_KEY="sk_test",
        STRIPE_WEBHOOK_SECRET="whsec_test",
        SHOPIFY_SHOP_DOMAIN="bridge.myshopify.com",
        SHOPIFY_ACCESS_TOKEN="shpat_test",
    )

    ServiceFactory.configure_dependencies(settings)

    processor = ServiceFactory.get_webhook_processor()
    assert isinstance(processor, WebhookProcessor)
    assert processor.order_writer is not None
    assert processor.settings is settings
    assert ServiceFactory.get_signature_verifier().secret == "whsec_test"
