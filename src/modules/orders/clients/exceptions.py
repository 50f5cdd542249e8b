"""Collaborator failures.

Raised by the catalog and identity clients.  The order saga catches them
at the call site and translates them into ``modules.orders.exceptions``;
they never reach the API layer.
"""

from __future__ import annotations


class CollaboratorError(Exception):
    """Base class for failures reported by a remote collaborator."""


class CatalogError(CollaboratorError):
    """Base class for catalog failures."""

    def __init__(self, message: str, product_id: str = "") -> None:
        super().__init__(message)
        self.product_id = product_id


class CatalogProductNotFound(CatalogError):
    """The catalog does not know the product."""


class CatalogInsufficientStock(CatalogError):
    """Applying the stock delta would make stock negative."""


class CatalogUnavailable(CatalogError):
    """Transport error, timeout, unexpected status or malformed response."""


class IdentityUnavailable(CollaboratorError):
    """The identity check could not be performed."""
