import pytest
import redis
import requests

from marketplace.services import notification_service
from marketplace.services.lock_service import LockService
from marketplace.services.notification_service import NotificationService, status_message
from marketplace.services.product_client import ProductClient


class StubRedis:
    def __init__(self, fail_times=0):
        self.store = {}
        self.fail_times = fail_times

    def set(self, name, value, nx=False, ex=None):
        if self.fail_times:
            self.fail_times -= 1
            raise redis.ConnectionError("down")
        if nx and name in self.store:
            return None
        self.store[name] = value
        return True

    def eval(self, script, numkeys, key, owner):
        if self.store.get(key) == owner:
            del self.store[key]
            return 1
        return 0


def test_lock_is_exclusive_and_owner_released():
    stub = StubRedis()
    locks = LockService(client=stub)

    assert locks.acquire_order_lock(1, "a", ttl=10)
    assert not locks.acquire_order_lock(1, "b", ttl=10)
    assert stub.store == {"order:1:assign:lock": "a"}

    assert not locks.release_order_lock(1, "b")
    assert locks.release_order_lock(1, "a")
    assert locks.acquire_order_lock(1, "b", ttl=10)


def test_lock_retries_transient_redis_errors():
    locks = LockService(client=StubRedis(fail_times=2))
    assert locks.acquire_order_lock(5, "a", ttl=10)


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code}")

    def json(self):
        return self._payload


def test_product_client_posts_delta(monkeypatch):
    calls = []

    def fake_post(url, json, timeout):
        calls.append((url, json))
        return FakeResponse(payload={"id": 3, "stock": 7})

    monkeypatch.setattr(requests, "post", fake_post)
    client = ProductClient(base_url="http://products/")

    assert client.adjust_stock(3, -1) == {"id": 3, "stock": 7}
    assert calls == [("http://products/products/3/stock", {"delta": -1})]


def test_product_client_gives_up_after_three_attempts(monkeypatch):
    attempts = []

    def fake_post(url, json, timeout):
        attempts.append(url)
        return FakeResponse(status_code=503)

    monkeypatch.setattr(requests, "post", fake_post)
    with pytest.raises(requests.HTTPError):
        ProductClient(base_url="http://products").adjust_stock(1, 1)
    assert len(attempts) == 3


def test_status_messages():
    assert status_message("delivered", "ORD-1") == "Votre commande ORD-1 a été livrée. Merci pour votre confiance !"
    assert "ORD-2" in status_message("something_new", "ORD-2")


def test_notify_enqueues_task(monkeypatch):
    queued = []
    monkeypatch.setattr(
        notification_service.send_notification_task,
        "delay",
        lambda *args: queued.append(args),
    )
    NotificationService().notify(3, "order_status", "hello")
    assert queued == [(3, "order_status", "hello", {})]


def test_notify_failure_is_logged_not_raised(monkeypatch):
    def broken(*args):
        raise ConnectionError("broker down")

    monkeypatch.setattr(notification_service.send_notification_task, "delay", broken)
    NotificationService().notify(3, "order_status", "hello")


def test_notification_task_runs_eagerly():
    result = notification_service.send_notification_task.run(3, "order_status", "hello", {})
    assert result == {"user_id": 3, "type": "order_status", "status": "sent"}


def test_dev_product_service_stock_endpoint():
    from fastapi.testclient import TestClient
    from marketplace.product_service.main import PRODUCTS, app

    client = TestClient(app)
    before = PRODUCTS[2]["stock"]

    assert client.post("/products/2/stock", json={"delta": -1}).json()["stock"] == before - 1
    assert client.post("/products/2/stock", json={"delta": -10_000}).status_code == 409
    assert client.post("/products/999/stock", json={"delta": 1}).status_code == 404
    client.post("/products/2/stock", json={"delta": 1})
    assert PRODUCTS[2]["stock"] == before
