"""Order and OrderItem models.

Business rules implemented:
- Status is one of ``pending``/``paid``/``canceled``; transitions are
  validated by the order saga against ``VALID_TRANSITIONS``.
- ``total`` equals the sum of ``quantity * price`` over the items,
  rounded half-up to cents.  The saga computes it; ``Order.items_total``
  recomputes it from persisted rows.
- OrderItem stores the unit price frozen at creation time (``price``);
  it is never refreshed from the catalog afterwards.
- ``user_id`` and ``product_id`` are opaque references into services this
  one does not own, so they are plain columns, not foreign keys.
"""

from __future__ import annotations

from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    quantize_money,
)


class Order(BaseModel):
    """Order aggregate root.  Items are owned through ``Order.items``."""

    user_id: models.CharField = models.CharField(max_length=64, db_index=True)
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    total: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        default=Decimal("0.00"),
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["user_id", "-created_at"], name="orders_user_created_idx"),
        ]

    # ------------------------------------------------------------------
    # State Machine helpers
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        """Return ``True`` if the order is in a terminal state."""
        return self.status in TERMINAL_STATES

    def can_transition_to(self, new_status: str) -> bool:
        """Check whether transitioning to *new_status* is valid."""
        allowed = VALID_TRANSITIONS.get(self.status, set())
        return new_status in allowed

    # ------------------------------------------------------------------
    # Totals
    # ------------------------------------------------------------------

    def items_total(self) -> Decimal:
        """Recompute the total from the persisted line items."""
        return quantize_money(
            sum((item.line_total for item in self.items.all()), Decimal("0.00"))
        )

    def __str__(self) -> str:
        return f"{self.id} ({self.status})"


class OrderItem(BaseModel):
    """Line item of an Order with its frozen unit price.

    ``position`` keeps the caller-supplied line order.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    product_id: models.CharField = models.CharField(max_length=64)
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
    )
    price: models.DecimalField = models.DecimalField(
        max_digits=10,
        decimal_places=2,
    )

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    @property
    def line_total(self) -> Decimal:
        return self.quantity * self.price

    def __str__(self) -> str:
        return f"{self.product_id} x{self.quantity} @ {self.price}"
