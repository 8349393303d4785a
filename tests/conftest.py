import json
import pytest
import httpx

from cantinaxl.core.config import Settings
from cantinaxl.models.order import Order, OrderStatus
from cantinaxl.services.orders import InMemoryOrderRepository
from cantinaxl.services.tropipay import compute_signature

CLIENT_ID = "client-id"
CLIENT_SECRET = "client-secret"


@pytest.fixture
def test_settings():
    return Settings(
        ENVIRONMENT="development",
        TROPIPAY_CLIENT_ID=CLIENT_ID,
        TROPIPAY_CLIENT_SECRET=CLIENT_SECRET,
        TROPIPAY_API_URL="https://tropipay.test/api/v2",
        TROPIPAY_SHORT_URL_BASE="https://tppay.me",
        WEBHOOK_BASE_URL="https://shop.test",
        MOCK_PAYMENT=False,
        SKIP_SIGNATURE_VERIFICATION=False,
        BREVO_API_KEY="brevo-key",
        BREVO_API_URL="https://brevo.test/v3",
        STOREFRONT_URL="https://cantinaxl.com",
        HTTP_RETRIES=0,
    )


@pytest.fixture
def repository():
    return InMemoryOrderRepository([
        Order(reference="ORD-1", amount=10000, currency="EUR", customer_email="ana@example.com",
              package_id="semana-sabrosa"),
        Order(reference="ORD-PAID", amount=2999, currency="EUR", status=OrderStatus.SUCCEEDED,
              gateway_transaction_id="111"),
    ])


class RecordingTransport:
    """httpx.MockTransport wrapper that keeps every request it served."""

    def __init__(self, routes):
        self.routes = routes
        self.requests = []
        self.transport = httpx.MockTransport(self._handle)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for suffix, response in self.routes.items():
            if request.url.path.endswith(suffix):
                if callable(response):
                    return response(request)
                return httpx.Response(response.status_code, headers=response.headers, content=response.content)
        return httpx.Response(404, json={"error": "not found"})

    def paths(self):
        return [r.url.path for r in self.requests]

    def json_for(self, suffix):
        return [json.loads(r.content) for r in self.requests if r.url.path.endswith(suffix)]


@pytest.fixture
def tropipay_routes():
    return {
        "/access/token": httpx.Response(200, json={"access_token": "tok", "expires_in": 3600}),
        "/paymentcards": httpx.Response(
            200, json={"id": "pl-1", "hash": "abc123", "shortUrl": "https://tppay.me/abc123"}
        ),
    }


def webhook_payload(reference="ORD-1", state=5, amount=10000, status=None, signed=True, **extra):
    status = status or ("success" if state == 5 else "failed")
    bank_order_code = "123456789012"
    data = {
        "state": state,
        "reference": reference,
        "originalCurrencyAmount": amount,
        "bankOrderCode": bank_order_code,
        "signaturev2": compute_signature(bank_order_code, CLIENT_ID, CLIENT_SECRET, amount)
        if signed else "bad-signature",
        "currency": "EUR",
        "amount": amount,
        "concept": f"Order {reference}",
        "description": "Meal package",
        "createdAt": "2025-03-01T10:00:00Z",
    }
    data.update(extra)
    return {"status": status, "data": data}
