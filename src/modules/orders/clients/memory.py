"""In-memory doubles of the collaborator capabilities.

Used by the test-suite and for running the service without the remote
catalog/identity services.  Both record every call they receive and let
a test inject a failure for a given operation.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, List, Tuple

from modules.orders.clients.exceptions import (
    CatalogInsufficientStock,
    CatalogProductNotFound,
    CollaboratorError,
    IdentityUnavailable,
)
from modules.orders.clients.interfaces import (
    IIdentityValidator,
    IStockCatalogClient,
    ProductSnapshot,
)

FETCH = "fetch"
RESERVE = "reserve"
RELEASE = "release"


class InMemoryStockCatalog(IStockCatalogClient):
    """Catalog double holding price/stock per product id.

    ``failures`` maps ``(operation, product_id)`` to the exception raised
    instead of performing the call; operation is ``"fetch"``,
    ``"reserve"`` (negative delta) or ``"release"`` (positive delta).
    """

    def __init__(self) -> None:
        self._products: Dict[str, ProductSnapshot] = {}
        self.failures: Dict[Tuple[str, str], CollaboratorError] = {}
        self.calls: List[Tuple] = []

    def add_product(self, product_id: str, price: Decimal | str, stock: int) -> None:
        self._products[product_id] = ProductSnapshot(
            id=product_id, price=Decimal(price), stock=stock
        )

    def remove_product(self, product_id: str) -> None:
        self._products.pop(product_id, None)

    def stock_of(self, product_id: str) -> int:
        return self._products[product_id].stock

    @property
    def adjustments(self) -> List[Tuple[str, int]]:
        """``(product_id, delta)`` of every ``adjust_stock`` call, in order."""
        return [(call[1], call[2]) for call in self.calls if call[0] == "adjust"]

    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        self.calls.append(("fetch", product_id))
        self._raise_injected(FETCH, product_id)
        snapshot = self._products.get(product_id)
        if snapshot is None:
            raise CatalogProductNotFound(
                f"Product {product_id} not found.", product_id=product_id
            )
        return snapshot

    def adjust_stock(self, product_id: str, delta: int) -> None:
        self.calls.append(("adjust", product_id, delta))
        self._raise_injected(RESERVE if delta < 0 else RELEASE, product_id)
        snapshot = self._products.get(product_id)
        if snapshot is None:
            raise CatalogProductNotFound(
                f"Product {product_id} not found.", product_id=product_id
            )
        new_stock = snapshot.stock + delta
        if new_stock < 0:
            raise CatalogInsufficientStock(
                f"Product {product_id}: stock {snapshot.stock}, delta {delta}.",
                product_id=product_id,
            )
        self._products[product_id] = ProductSnapshot(
            id=product_id, price=snapshot.price, stock=new_stock
        )

    def _raise_injected(self, operation: str, product_id: str) -> None:
        error = self.failures.get((operation, product_id))
        if error is not None:
            raise error


class InMemoryIdentityValidator(IIdentityValidator):
    """Identity double: knows a fixed set of user ids.

    Set ``available = False`` to make every check fail as if the identity
    service were unreachable.
    """

    def __init__(self, user_ids: Iterable[str] = ()) -> None:
        self._user_ids = set(user_ids)
        self.available = True
        self.calls: List[str] = []

    def add_user(self, user_id: str) -> None:
        self._user_ids.add(user_id)

    def validate(self, user_id: str) -> bool:
        self.calls.append(user_id)
        if not self.available:
            raise IdentityUnavailable("identity service unreachable")
        return user_id in self._user_ids
