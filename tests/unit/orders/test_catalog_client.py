"""Unit tests for HTTPStockCatalogClient against an httpx.MockTransport."""

from __future__ import annotations

import json
from decimal import Decimal

import httpx
import pytest

from modules.core.middleware import correlation_id_var
from modules.orders.clients.catalog import HTTPStockCatalogClient
from modules.orders.clients.exceptions import (
    CatalogInsufficientStock,
    CatalogProductNotFound,
    CatalogUnavailable,
)

pytestmark = pytest.mark.unit

BASE_URL = "http://catalog.test"


class FakeCatalogServer:
    """Product REST resource served through ``httpx.MockTransport``."""

    def __init__(self):
        self.products = {}
        self.requests = []
        self.put_status = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        product_id = request.url.path.rsplit("/", 1)[-1]
        product = self.products.get(product_id)
        if product is None:
            return httpx.Response(404, json={"error": "not found"})
        if request.method == "GET":
            return httpx.Response(200, json={"id": product_id, **product})
        if request.method == "PUT":
            if self.put_status is not None:
                return httpx.Response(self.put_status, text="rejected")
            product["stock"] = json.loads(request.content)["stock"]
            return httpx.Response(200, json={"id": product_id, **product})
        return httpx.Response(405)


@pytest.fixture()
def server():
    fake = FakeCatalogServer()
    fake.products["p1"] = {"price": "15.00", "stock": 5}
    return fake


@pytest.fixture()
def client(server):
    http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(server.handler))
    catalog = HTTPStockCatalogClient(BASE_URL, client=http)
    yield catalog
    catalog.close()


def _static_client(response: httpx.Response) -> HTTPStockCatalogClient:
    http = httpx.Client(
        base_url=BASE_URL, transport=httpx.MockTransport(lambda request: response)
    )
    return HTTPStockCatalogClient(BASE_URL, client=http)


class TestFetchSnapshot:
    def test_parses_price_as_decimal(self, client):
        snapshot = client.fetch_snapshot("p1")

        assert snapshot.id == "p1"
        assert snapshot.price == Decimal("15.00")
        assert isinstance(snapshot.price, Decimal)
        assert snapshot.stock == 5

    def test_numeric_price_does_not_go_through_float(self):
        client = _static_client(httpx.Response(200, json={"price": 0.1, "stock": 1}))

        assert client.fetch_snapshot("p1").price == Decimal("0.1")

    def test_price_is_rounded_to_cents(self):
        client = _static_client(httpx.Response(200, json={"price": "19.995", "stock": 1}))

        assert client.fetch_snapshot("p1").price == Decimal("20.00")

    def test_not_found(self, client):
        with pytest.raises(CatalogProductNotFound) as exc_info:
            client.fetch_snapshot("missing")

        assert exc_info.value.product_id == "missing"

    def test_server_error_is_unavailable(self):
        client = _static_client(httpx.Response(500, text="oops"))

        with pytest.raises(CatalogUnavailable):
            client.fetch_snapshot("p1")

    @pytest.mark.parametrize(
        "body",
        [
            {"price": "abc", "stock": 1},
            {"price": "NaN", "stock": 1},
            {"price": "Infinity", "stock": 1},
            {"price": "1E+30", "stock": 1},
            {"stock": 1},
            {"price": "1.00"},
        ],
    )
    def test_malformed_payload_is_unavailable(self, body):
        client = _static_client(httpx.Response(200, json=body))

        with pytest.raises(CatalogUnavailable):
            client.fetch_snapshot("p1")

    def test_non_json_body_is_unavailable(self):
        client = _static_client(httpx.Response(200, text="<html>"))

        with pytest.raises(CatalogUnavailable):
            client.fetch_snapshot("p1")

    def test_transport_error_is_unavailable(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(refuse))
        client = HTTPStockCatalogClient(BASE_URL, client=http)

        with pytest.raises(CatalogUnavailable):
            client.fetch_snapshot("p1")

    def test_timeout_is_unavailable(self):
        def slow(request):
            raise httpx.ReadTimeout("timed out", request=request)

        http = httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(slow))
        client = HTTPStockCatalogClient(BASE_URL, client=http)

        with pytest.raises(CatalogUnavailable):
            client.fetch_snapshot("p1")

    def test_product_id_is_path_escaped(self, client, server):
        with pytest.raises(CatalogProductNotFound):
            client.fetch_snapshot("a/b")

        assert server.requests[0].url.raw_path == b"/products/a%2Fb"


class TestAdjustStock:
    def test_reserve_writes_absolute_stock(self, client, server):
        client.adjust_stock("p1", -2)

        assert server.products["p1"]["stock"] == 3
        put = server.requests[-1]
        assert put.method == "PUT"
        assert json.loads(put.content) == {"stock": 3}

    def test_release_adds_stock(self, client, server):
        client.adjust_stock("p1", 4)

        assert server.products["p1"]["stock"] == 9

    def test_reserving_to_zero_is_allowed(self, client, server):
        client.adjust_stock("p1", -5)

        assert server.products["p1"]["stock"] == 0

    def test_negative_result_raises_without_writing(self, client, server):
        with pytest.raises(CatalogInsufficientStock):
            client.adjust_stock("p1", -6)

        assert [r.method for r in server.requests] == ["GET"]
        assert server.products["p1"]["stock"] == 5

    def test_unknown_product(self, client):
        with pytest.raises(CatalogProductNotFound):
            client.adjust_stock("missing", -1)

    def test_write_rejected_with_400_is_insufficient(self, client, server):
        server.put_status = 400

        with pytest.raises(CatalogInsufficientStock):
            client.adjust_stock("p1", -1)

    def test_write_failing_with_500_is_unavailable(self, client, server):
        server.put_status = 503

        with pytest.raises(CatalogUnavailable):
            client.adjust_stock("p1", -1)

    def test_product_deleted_between_read_and_write(self, client, server):
        server.put_status = 404

        with pytest.raises(CatalogProductNotFound):
            client.adjust_stock("p1", -1)


class TestCorrelationId:
    def test_forwards_request_id(self, client, server):
        token = correlation_id_var.set("cid-123")
        try:
            client.fetch_snapshot("p1")
        finally:
            correlation_id_var.reset(token)

        assert server.requests[0].headers["X-Request-ID"] == "cid-123"

    def test_no_header_outside_a_request(self, client, server):
        client.fetch_snapshot("p1")

        assert "X-Request-ID" not in server.requests[0].headers


class TestClose:
    def test_close_closes_http_client(self):
        http = httpx.Client(
            base_url=BASE_URL, transport=httpx.MockTransport(lambda request: httpx.Response(200))
        )

        HTTPStockCatalogClient(BASE_URL, client=http).close()

        assert http.is_closed
