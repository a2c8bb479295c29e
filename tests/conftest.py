"""Pytest fixtures for the storefront order service (SQLite per test)."""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

from decimal import Decimal

import pytest
from sqlalchemy.orm import sessionmaker

from storefront.data.database import Base, make_engine
from storefront.data.models import ProductModel
from storefront.data.seed import seed_products
from storefront.services.order_service import OrderService

PRODUCTS = [
    {"id": 1, "name": "Keyboard", "price": Decimal("10.00"), "stock": 5},
    {"id": 2, "name": "Mouse", "price": Decimal("20.00"), "stock": 10},
    {"id": 3, "name": "Monitor", "price": Decimal("100.00"), "stock": 0},  # Out of stock
]


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send_order_notification(self, user_id, order_id, status):
        self.sent.append((user_id, order_id, status))


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'storefront.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(bind=engine, autoflush=False)

    db = factory()
    try:
        seed_products(db, PRODUCTS)
    finally:
        db.close()

    return factory


@pytest.fixture
def db(session_factory):
    db = session_factory()
    yield db
    db.close()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def make_service(db, notifier):
    def _make(flow="pay_later", **kwargs) -> OrderService:
        return OrderService(db, notification_service=notifier, flow=flow, **kwargs)

    return _make


@pytest.fixture
def stock_of(session_factory):
    """Reads the committed stock with a fresh session."""

    def _stock(product_id: int) -> int:
        db = session_factory()
        try:
            return db.get(ProductModel, product_id).stock
        finally:
            db.close()

    return _stock
