from decimal import Decimal

import pytest

from rest_framework.test import APIClient

from modules.orders.clients.memory import InMemoryIdentityValidator, InMemoryStockCatalog
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderSaga

KNOWN_USER = "user-1"


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


@pytest.fixture()
def catalog():
    """In-memory catalog with two products."""
    stock_catalog = InMemoryStockCatalog()
    stock_catalog.add_product("p1", Decimal("15.00"), 5)
    stock_catalog.add_product("p2", Decimal("2.50"), 10)
    return stock_catalog


@pytest.fixture()
def identity():
    return InMemoryIdentityValidator([KNOWN_USER])


@pytest.fixture()
def saga(catalog, identity):
    return OrderSaga(
        order_repository=OrderDjangoRepository(),
        catalog=catalog,
        identity=identity,
    )


@pytest.fixture()
def wired_api(monkeypatch, catalog, identity):
    """Point the order API at the in-memory collaborators."""
    monkeypatch.setattr("modules.orders.views.get_stock_catalog_client", lambda: catalog)
    monkeypatch.setattr("modules.orders.views.get_identity_validator", lambda: identity)
    return catalog, identity
