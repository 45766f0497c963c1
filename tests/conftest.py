import os

# przed importem aplikacji - settings czyta env przy imporcie
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

from decimal import Decimal
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.main import app
from marketplace.api.dependencies import get_lock_service, get_notification_service, get_product_client
from marketplace.data.database import Base, get_db
from marketplace.data.models import (
    LivreurCurrentOrderModel,
    LivreurModel,
    OrderItemModel,
    OrderModel,
    UserModel,
)
from marketplace.domain.order_state import record_creation
from marketplace.services.notification_service import NotificationService

ADMIN_ID = 1
VENDOR_ID = 2
CUSTOMER_ID = 3
OTHER_VENDOR_ID = 4
OTHER_CUSTOMER_ID = 5


# --- Zamienniki kolaboratorow ---

class FakeLockService:
    """Lock w pamieci - ta sama semantyka co SET NX + compare-and-delete."""

    def __init__(self):
        self.locks = {}
        self.acquired = []

    def acquire_order_lock(self, order_id: int, owner: str, ttl: int) -> bool:
        if order_id in self.locks:
            return False
        self.locks[order_id] = owner
        self.acquired.append(order_id)
        return True

    def release_order_lock(self, order_id: int, owner: str) -> bool:
        if self.locks.get(order_id) == owner:
            del self.locks[order_id]
            return True
        return False


class RecordingNotifier(NotificationService):
    """Zamiast kolejki Celery zapisuje wyslane powiadomienia."""

    def __init__(self):
        self.sent = []

    def notify(self, user_id, notification_type, content, data=None):
        self.sent.append(
            {"user_id": user_id, "type": notification_type, "content": content, "data": data or {}}
        )

    def types_for(self, user_id):
        return [n["type"] for n in self.sent if n["user_id"] == user_id]


class FakeProductClient:
    def __init__(self, failing=None):
        self.calls = []
        self.failing = set(failing or [])

    def adjust_stock(self, product_id: int, delta: int) -> dict:
        if product_id in self.failing:
            raise RuntimeError(f"product {product_id} unavailable")
        self.calls.append((product_id, delta))
        return {"id": product_id}


# --- Fixtures bazy ---

@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def lock_service():
    return FakeLockService()


@pytest.fixture
def product_client():
    return FakeProductClient()


@pytest.fixture
def client(db, notifier, lock_service, product_client) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_service] = lambda: notifier
    app.dependency_overrides[get_lock_service] = lambda: lock_service
    app.dependency_overrides[get_product_client] = lambda: product_client
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth(user_id: int, role: str) -> dict:
    return {"X-User-Id": str(user_id), "X-User-Role": role}


# --- Fabryki danych ---

@pytest.fixture
def make_user(db):
    def _make(user_id: int, name: str = "Test", role: str = "user", phone: str | None = None):
        user = db.get(UserModel, user_id)
        if user is None:
            user = UserModel(id=user_id, name=name, role=role, phone=phone)
            db.add(user)
            db.commit()
        return user

    return _make


@pytest.fixture
def make_livreur(db, make_user):
    def _make(
        user_id: int,
        zone: str = "Tunis",
        rating: float = 5.0,
        max_orders: int = 5,
        status: str = "approved",
        is_available: bool = True,
        additional_zones=None,
        current_order_ids=(),
    ):
        make_user(user_id, name=f"Livreur {user_id}", role="livreur", phone=f"+216200000{user_id:02d}")
        livreur = LivreurModel(
            user_id=user_id,
            zone=zone,
            additional_zones=list(additional_zones or []),
            vehicle_type="moto",
            is_available=is_available,
            status=status,
            max_orders_at_once=max_orders,
            rating=rating,
            version=1,
        )
        for order_id in current_order_ids:
            livreur.current_orders.append(LivreurCurrentOrderModel(order_id=order_id))
        db.add(livreur)
        db.commit()
        return livreur

    return _make


@pytest.fixture
def make_order(db):
    def _make(
        status: str = "pending",
        city: str = "Tunis",
        user_id: int = CUSTOMER_ID,
        vendor_id: int = VENDOR_ID,
        livreur_id: int | None = None,
        items=None,
        shipping_cost="7.00",
        tax="0",
        discount="0",
    ):
        items = items or [{"product_id": 1, "price": "20.00", "quantity": 2, "discount": "0"}]
        order = OrderModel(
            user_id=user_id,
            vendor_id=vendor_id,
            livreur_id=livreur_id,
            recipient_name="Amira Ben Salah",
            phone="+21620000003",
            street="12 Rue de Marseille",
            city=city,
            postal_code="1000",
            country="Tunisie",
            shipping_cost=Decimal(shipping_cost),
            tax=Decimal(tax),
            discount=Decimal(discount),
            payment_method="cash_on_delivery",
            payment_status="pending",
            version=1,
            delivery_attempts=0,
            items=[
                OrderItemModel(
                    product_id=i["product_id"],
                    vendor_id=vendor_id,
                    title=f"Produit {i['product_id']}",
                    price=Decimal(i["price"]),
                    quantity=i["quantity"],
                    discount=Decimal(i.get("discount", "0")),
                )
                for i in items
            ],
        )
        record_creation(order, actor_id=user_id)
        order.status = status
        db.add(order)
        db.commit()
        return order

    return _make
