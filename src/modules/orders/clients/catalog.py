"""HTTP implementation of the stock catalog capability.

Talks to the product service REST resource:

- ``GET  /products/{id}`` -> ``{"id", "price": "<text>", "stock": <int>, ...}``;
  the price is parsed as ``Decimal`` and rounded to cents
- ``PUT  /products/{id}`` with ``{"stock": <new absolute value>}``

The product service only accepts absolute stock values, so
``adjust_stock`` is a read-then-write: it is **not** atomic with respect
to other writers adjusting the same product between the two requests.
The catalog's own non-negative check on the write is the last guard.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any, Optional
from urllib.parse import quote

import httpx
import structlog

from modules.core.middleware import REQUEST_ID_HEADER, get_correlation_id
from modules.orders.clients.exceptions import (
    CatalogInsufficientStock,
    CatalogProductNotFound,
    CatalogUnavailable,
)
from modules.orders.clients.interfaces import IStockCatalogClient, ProductSnapshot
from modules.orders.constants import quantize_money

logger = structlog.get_logger(__name__)

_ERROR_BODY_LIMIT = 256


class HTTPStockCatalogClient(IStockCatalogClient):
    """Stock catalog client backed by ``httpx``.

    Every request is bounded by *timeout* seconds.  Pass *client* to reuse
    an existing ``httpx.Client`` (tests hand in one built on
    ``httpx.MockTransport``).
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._client = client or httpx.Client(
            base_url=base_url.rstrip("/"), timeout=timeout
        )

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # IStockCatalogClient
    # ------------------------------------------------------------------

    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        response = self._request("GET", product_id)
        if response.status_code == httpx.codes.NOT_FOUND:
            raise CatalogProductNotFound(
                f"Product {product_id} not found.", product_id=product_id
            )
        if response.status_code != httpx.codes.OK:
            raise CatalogUnavailable(
                f"fetch {product_id}: status={response.status_code} "
                f"body={_excerpt(response)!r}",
                product_id=product_id,
            )
        return _parse_snapshot(product_id, response)

    def adjust_stock(self, product_id: str, delta: int) -> None:
        snapshot = self.fetch_snapshot(product_id)
        new_stock = snapshot.stock + delta
        if new_stock < 0:
            raise CatalogInsufficientStock(
                f"Product {product_id}: stock {snapshot.stock}, delta {delta}.",
                product_id=product_id,
            )

        response = self._request("PUT", product_id, json={"stock": new_stock})
        if response.is_success:
            logger.debug(
                "catalog.stock_adjusted",
                product_id=product_id,
                delta=delta,
                stock=new_stock,
            )
            return
        if response.status_code == httpx.codes.NOT_FOUND:
            raise CatalogProductNotFound(
                f"Product {product_id} not found.", product_id=product_id
            )
        if response.status_code == httpx.codes.BAD_REQUEST:
            raise CatalogInsufficientStock(
                f"Catalog rejected stock={new_stock} for {product_id}: "
                f"{_excerpt(response)!r}",
                product_id=product_id,
            )
        raise CatalogUnavailable(
            f"update stock {product_id}: status={response.status_code} "
            f"body={_excerpt(response)!r}",
            product_id=product_id,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(self, method: str, product_id: str, **kwargs: Any) -> httpx.Response:
        url = f"/products/{quote(product_id, safe='')}"
        headers = {}
        correlation_id = get_correlation_id()
        if correlation_id:
            headers[REQUEST_ID_HEADER] = correlation_id
        try:
            return self._client.request(method, url, headers=headers, **kwargs)
        except httpx.HTTPError as exc:
            logger.warning(
                "catalog.request_failed",
                method=method,
                product_id=product_id,
                error=str(exc),
            )
            raise CatalogUnavailable(
                f"{method} {url}: {exc.__class__.__name__}: {exc}",
                product_id=product_id,
            ) from exc


def _parse_snapshot(product_id: str, response: httpx.Response) -> ProductSnapshot:
    try:
        payload = response.json()
        price = Decimal(str(payload["price"]))
        stock = int(payload["stock"])
    except (KeyError, TypeError, ValueError, InvalidOperation) as exc:
        raise CatalogUnavailable(
            f"decode {product_id}: malformed product payload ({exc})",
            product_id=product_id,
        ) from exc
    if not price.is_finite():
        raise CatalogUnavailable(
            f"decode {product_id}: price {payload['price']!r} is not a number",
            product_id=product_id,
        )
    try:
        price = quantize_money(price)
    except InvalidOperation as exc:
        raise CatalogUnavailable(
            f"decode {product_id}: price {payload['price']!r} out of range",
            product_id=product_id,
        ) from exc
    return ProductSnapshot(id=product_id, price=price, stock=stock)


def _excerpt(response: httpx.Response) -> str:
    return response.text[:_ERROR_BODY_LIMIT]
