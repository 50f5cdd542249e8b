"""Order domain exceptions.

Raised by the Service Layer when an order cannot be created or moved to
another status.  Every exception carries a stable ``code`` and the HTTP
status the API layer answers with, so callers branch on the failure kind
instead of parsing messages.
"""

from __future__ import annotations


class OrderError(Exception):
    """Base class for failures surfaced by the order saga."""

    code = "order_error"
    http_status = 500


class InvalidUser(OrderError):
    """The identity check was negative or could not be performed.

    ``reason`` is ``"unknown_user"`` for a genuine client error and
    ``"identity_unavailable"`` when the identity service failed.
    """

    code = "invalid_user"
    http_status = 400

    UNKNOWN_USER = "unknown_user"
    IDENTITY_UNAVAILABLE = "identity_unavailable"

    def __init__(self, message: str, reason: str = UNKNOWN_USER) -> None:
        super().__init__(message)
        self.reason = reason


class ProductNotFound(OrderError):
    """A product referenced by an order item is unknown to the catalog."""

    code = "product_not_found"
    http_status = 404


class InsufficientStock(OrderError):
    """The catalog refused a reservation that would drive stock below zero."""

    code = "insufficient_stock"
    http_status = 409


class ServiceUnavailable(OrderError):
    """A collaborator could not be reached within its timeout."""

    code = "service_unavailable"
    http_status = 503


class OrderPersistenceError(OrderError):
    """The durable write failed; reservations were already compensated."""

    code = "persistence_error"
    http_status = 500


class InvalidStatus(OrderError):
    """The requested status is outside ``pending``/``paid``/``canceled``."""

    code = "invalid_status"
    http_status = 400


class InvalidStatusTransition(InvalidStatus):
    """The requested status is valid but not reachable from the current one."""


class OrderNotFound(OrderError):
    """The requested order does not exist."""

    code = "order_not_found"
    http_status = 404
