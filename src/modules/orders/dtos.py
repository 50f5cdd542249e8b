"""Order DTOs for the Service Layer.

Framework-agnostic data transfer objects using Pydantic v2.
These are the contracts between the API layer (DRF Serializers)
and the order saga.  DTOs are immutable (``frozen=True``).

Constructing a ``CreateOrderDTO`` is the precondition check of order
creation: a malformed request never reaches a collaborator.

- ``CreateOrderItemDTO``: input for a single order line item.
- ``CreateOrderDTO``: input for order creation (nested items).
"""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, field_validator


def _non_blank(value: str, field: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError(f"{field} must not be empty.")
    return value


class CreateOrderItemDTO(BaseModel):
    """Immutable DTO for a single order item in a creation request.

    The caller sends ``product_id`` and ``quantity``.  The unit price is
    resolved by the saga from the catalog and frozen on the line item.
    """

    model_config = ConfigDict(frozen=True)

    product_id: str
    quantity: int

    @field_validator("product_id")
    @classmethod
    def product_id_must_not_be_blank(cls, v: str) -> str:
        return _non_blank(v, "product_id")

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class CreateOrderDTO(BaseModel):
    """Immutable DTO for order creation requests.

    Validates:
    - ``user_id`` must not be blank.
    - ``items`` must contain at least one item.
    - Each item quantity must be positive.

    Repeated product ids are accepted on purpose: each line is reserved
    against the catalog independently.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    items: List[CreateOrderItemDTO]

    @field_validator("user_id")
    @classmethod
    def user_id_must_not_be_blank(cls, v: str) -> str:
        return _non_blank(v, "user_id")

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[CreateOrderItemDTO]
    ) -> List[CreateOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v
