"""Order domain constants.

Defines status choices, the order status state machine and the money
rounding rule shared by price freezing and total computation.
"""

from decimal import ROUND_HALF_UP, Decimal

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PAID = "paid", "Paid"
    CANCELED = "canceled", "Canceled"


VALID_TRANSITIONS: dict[str, set[str]] = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.CANCELED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELED: set(),
}

TERMINAL_STATES: set[str] = {OrderStatus.PAID, OrderStatus.CANCELED}

# The only transition that hands reserved stock back to the catalog.
RESTOCK_TRANSITIONS: set[tuple[str, str]] = {
    (OrderStatus.PENDING, OrderStatus.CANCELED),
}

CENT = Decimal("0.01")
MONEY_ROUNDING = ROUND_HALF_UP

DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 100


def quantize_money(value: Decimal) -> Decimal:
    """Round *value* to cents, half-up."""
    return value.quantize(CENT, rounding=MONEY_ROUNDING)


def normalize_page(limit: int, offset: int) -> tuple[int, int]:
    """Apply the list paging rules: out-of-range limit falls back to the
    default, negative offset becomes 0."""
    if limit < 1 or limit > MAX_LIST_LIMIT:
        limit = DEFAULT_LIST_LIMIT
    return limit, max(offset, 0)
