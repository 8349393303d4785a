import httpx
import pytest

from cantinaxl.core.exceptions import CrmSyncError
from cantinaxl.data.packages import catalog_products
from cantinaxl.services.brevo_stats import BrevoStatsClient
from conftest import RecordingTransport


@pytest.mark.asyncio
async def test_register_products(test_settings):
    recorder = RecordingTransport({"/products/batch": httpx.Response(204)})
    client = BrevoStatsClient(test_settings, transport=recorder.transport)

    await client.register_products(catalog_products("https://cantinaxl.com"))

    [request] = recorder.requests
    assert request.url.path == "/v3/products/batch"
    assert request.headers["api-key"] == "brevo-key"
    [payload] = recorder.json_for("/products/batch")
    product = payload["products"][1]
    assert product["id"] == "toquecito-xl"
    assert product["url"] == "https://cantinaxl.com/packages/toquecito-xl"
    assert product["imageUrl"] == "https://cantinaxl.com/images/packages/toquecito-xl.jpg"
    assert product["categories"] == ["meal-package"]
    assert product["metadata"] == {"meals": 3, "description": "Cubre 3 días de alimentación variada."}


@pytest.mark.asyncio
async def test_register_order(test_settings):
    recorder = RecordingTransport({"/orders/status/batch": httpx.Response(202, json={"batchId": 9})})
    client = BrevoStatsClient(test_settings, transport=recorder.transport)

    result = await client.register_order({
        "orderId": "ORD-1",
        "email": "ana@example.com",
        "totalAmount": 49.99,
        "packageId": "semana-sabrosa",
        "packageQuantity": 1,
        "packagePrice": 49.99,
    })

    assert result == {"batchId": 9}
    [payload] = recorder.json_for("/orders/status/batch")
    assert payload["historical"] is True
    [order] = payload["orders"]
    assert order["id"] == "ORD-1"
    assert order["identifiers"] == {"email_id": "ana@example.com"}
    assert order["status"] == "completed"
    assert order["storeId"] == "cantinaxl"
    assert order["products"] == [{"productId": "semana-sabrosa", "quantity": 1, "price": 49.99}]


@pytest.mark.asyncio
async def test_api_error_raises_crm_sync_error(test_settings):
    recorder = RecordingTransport({"/products/batch": httpx.Response(400, json={"code": "invalid_parameter"})})
    client = BrevoStatsClient(test_settings, transport=recorder.transport)

    with pytest.raises(CrmSyncError) as exc:
        await client.register_products([{"id": "x", "name": "X"}])
    assert "400" in str(exc.value)
    assert "invalid_parameter" in str(exc.value)


@pytest.mark.asyncio
async def test_missing_api_key(test_settings):
    test_settings.BREVO_API_KEY = ""
    recorder = RecordingTransport({})
    client = BrevoStatsClient(test_settings, transport=recorder.transport)

    with pytest.raises(CrmSyncError):
        await client.register_order({"orderId": "ORD-1"})
    assert recorder.requests == []
