from cantinaxl.core.exceptions import CrmSyncError
from cantinaxl.models.order import Order, OrderStatus
from cantinaxl.tasks import tasks


class FakeBrevoClient:
    calls = []
    fail = False

    async def register_order(self, snapshot):
        if self.fail:
            raise CrmSyncError("API error: 500")
        self.calls.append(("order", snapshot))
        return {}

    async def register_products(self, products):
        if self.fail:
            raise CrmSyncError("API error: 500")
        self.calls.append(("products", products))
        return {}


def _fake_client(monkeypatch, fail=False):
    FakeBrevoClient.calls = []
    FakeBrevoClient.fail = fail
    monkeypatch.setattr(tasks, "BrevoStatsClient", FakeBrevoClient)


def test_sync_order_task(monkeypatch):
    _fake_client(monkeypatch)
    assert tasks.sync_order_to_crm_task({"orderId": "ORD-1"}) is True
    assert FakeBrevoClient.calls == [("order", {"orderId": "ORD-1"})]


def test_sync_order_task_swallows_crm_errors(monkeypatch):
    _fake_client(monkeypatch, fail=True)
    assert tasks.sync_order_to_crm_task({"orderId": "ORD-1"}) is False


def test_register_products_task(monkeypatch):
    _fake_client(monkeypatch)
    assert tasks.register_products_task([{"id": "p"}]) is True
    _fake_client(monkeypatch, fail=True)
    assert tasks.register_products_task([{"id": "p"}]) is False


def test_enqueue_order_sync(monkeypatch):
    queued = []

    class DummyTask:
        def delay(self, *args, **kwargs):
            queued.append(args)

    monkeypatch.setattr(tasks, "sync_order_to_crm_task", DummyTask())
    order = Order(
        reference="ORD-1",
        amount=4999,
        currency="EUR",
        status=OrderStatus.SUCCEEDED,
        customer_email="ana@example.com",
        package_id="semana-sabrosa",
    )
    tasks.enqueue_order_sync(order)

    [(snapshot,)] = queued
    assert snapshot["orderId"] == "ORD-1"
    assert snapshot["totalAmount"] == 49.99
    assert snapshot["packagePrice"] == 49.99


def test_enqueue_order_sync_never_raises(monkeypatch):
    class BrokenTask:
        def delay(self, *args, **kwargs):
            raise ConnectionError("broker unreachable")

    monkeypatch.setattr(tasks, "sync_order_to_crm_task", BrokenTask())
    tasks.enqueue_order_sync(Order(reference="ORD-1", amount=1, currency="EUR"))
