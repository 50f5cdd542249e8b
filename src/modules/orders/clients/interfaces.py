"""Capability contracts for the services the order saga does not own.

The saga depends on these abstractions only.  Each has one production
implementation talking to the remote service and one in-memory double
(``modules.orders.clients.memory``).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class ProductSnapshot:
    """Read-only view of a catalog product at one point in time.

    Used to freeze the unit price of a line item.  ``stock`` is advisory:
    ``IStockCatalogClient.adjust_stock`` is the only feasibility check.
    """

    id: str
    price: Decimal
    stock: int


class IStockCatalogClient(ABC):
    """Price and stock of catalog products."""

    @abstractmethod
    def fetch_snapshot(self, product_id: str) -> ProductSnapshot:
        """Return current price and stock of *product_id*.

        Raises:
            CatalogProductNotFound: the product id is unknown.
            CatalogUnavailable: the catalog could not answer.
        """

    @abstractmethod
    def adjust_stock(self, product_id: str, delta: int) -> None:
        """Add *delta* (negative to reserve, positive to release) to stock.

        Raises:
            CatalogInsufficientStock: stock would drop below zero.
            CatalogProductNotFound: the product vanished.
            CatalogUnavailable: the catalog could not answer.
        """


class IIdentityValidator(ABC):
    """Existence check for user identities."""

    @abstractmethod
    def validate(self, user_id: str) -> bool:
        """Return whether *user_id* currently exists.

        ``False`` means the identity service answered and does not know the
        user.

        Raises:
            IdentityUnavailable: the check itself could not be performed.
        """
