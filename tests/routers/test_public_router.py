"""공개 엔드포인트 테스트"""
import pytest
from fastapi.testclient import TestClient
import stripe

from checkout_bridge.core.dependencies import get_settings, get_stripe_client
from checkout_bridge.main import create_app


class StubStripe:
    def __init__(self, fail=False, prices=None):
        self.fail = fail
        self.prices = [{"id": "price_1", "unit_amount": 4999, "currency": "aud"}] if prices is None else prices

    async def retrieve_product(self, product_id):
        if self.fail:
            raise stripe.InvalidRequestError("No such product", param=None)
        return {
            "id": product_id,
            "name": "Platinum Membership",
            "description": "All access",
            "images": ["https://cdn.example.com/p.png"],
            "metadata": {"tier": "platinum"},
        }

    async def list_prices(self, product_id, active=True, limit=1):
        return self.prices


@pytest.fixture
def client_with(make_settings):
    def _build(stripe=None, **overrides):
        settings = make_settings(**overrides)
        app = create_app(settings)
        app.dependency_overrides[get_settings] = lambda: settings
        app.dependency_overrides[get_stripe_client] = lambda: stripe
        return TestClient(app)

    return _build


def test_health(client_with):
    response = client_with().get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "OK"
    assert body["timestamp"]


def test_config_exposes_publishable_key_only(client_with):
    response = client_with(
        STRIPE_PUBLISHABLE_KEY="pk_test_1", STRIPE_SECRET_KEY="sk_test_1", GA_MEASUREMENT_ID="G-123"
    ).get("/api/config")

    assert response.json() == {"publishableKey": "pk_test_1", "gaMeasurementId": "G-123"}


def test_config_without_analytics(client_with):
    response = client_with().get("/api/config")

    assert response.json() == {"publishableKey": ""}


def test_product_detail(client_with):
    response = client_with(StubStripe()).get("/api/product/prod_1")

    assert response.status_code == 200
    body = response.json()
    assert body["id"] == "prod_1"
    assert body["price"] == 49.99
    assert body["currency"] == "aud"
    assert body["image"] == "https://cdn.example.com/p.png"
    assert body["metadata"] == {"tier": "platinum"}


def test_product_without_price(client_with):
    body = client_with(StubStripe(prices=[])).get("/api/product/prod_1").json()

    assert body["price"] == 0
    assert body["currency"] == "usd"


def test_product_errors(client_with):
    assert client_with(None).get("/api/product/prod_1").status_code == 503
    response = client_with(StubStripe(fail=True)).get("/api/product/prod_1")
    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch product details"}
