"""
Pytest fixtures for the ShopMaster POS tests.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from shopmaster.core.config import Settings
from shopmaster.db.session import create_db_engine, create_session_factory, init_db
from shopmaster.domain.models import Product, ShopState, ShopType, UnitType
from shopmaster.main import create_app
from shopmaster.services.shop import ShopService


@pytest.fixture
def make_product():
    """
    Factory for products; defaults to a unit-counted stationery item.
    """

    def _make(**overrides) -> Product:
        data = {
            "id": "s1",
            "shop_type": ShopType.STATIONERY,
            "name": "Blue Gel Pen",
            "category": "Pen",
            "sku": "PEN001",
            "purchase_price": Decimal("5"),
            "selling_price": Decimal("10"),
            "unit_type": UnitType.UNIT,
            "stock": Decimal("5"),
            "low_stock_threshold": Decimal("2"),
        }
        data.update(overrides)
        return Product(**data)

    return _make


@pytest.fixture
def pen(make_product):
    return make_product()


@pytest.fixture
def rice(make_product):
    return make_product(
        id="g1",
        shop_type=ShopType.GENERAL_STORE,
        name="Basmati Rice",
        category="Grains",
        sku="RIC001",
        purchase_price=Decimal("80"),
        selling_price=Decimal("120"),
        unit_type=UnitType.KG,
        stock=Decimal("50"),
        low_stock_threshold=Decimal("5"),
    )


@pytest.fixture
def chocolate(make_product):
    return make_product(
        id="g2",
        shop_type=ShopType.GENERAL_STORE,
        name="Milk Chocolate Bar",
        category="Snacks",
        sku="SNK001",
        purchase_price=Decimal("15"),
        selling_price=Decimal("20"),
        unit_type=UnitType.UNIT,
        stock=Decimal("30"),
        low_stock_threshold=Decimal("5"),
    )


@pytest.fixture
def state(pen, rice, chocolate):
    return ShopState(catalog={p.id: p for p in (pen, rice, chocolate)})


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite:///{tmp_path / 'shop.db'}"


@pytest.fixture
def session_factory(database_url):
    engine = create_db_engine(database_url)
    init_db(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def service(session_factory):
    """
    Service over a fresh database seeded with the default catalog.
    """
    return ShopService.load(session_factory, seed_default_catalog=True)


@pytest.fixture
def client(database_url):
    app = create_app(Settings(database_url=database_url, log_json=False))
    with TestClient(app) as test_client:
        yield test_client
