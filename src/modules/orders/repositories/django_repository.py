"""Django ORM implementation of the Order repository.

Satisfies ``IOrderRepository`` using Django's QuerySet API.
``create`` is wrapped in ``transaction.atomic()`` so the Order aggregate
(Order + OrderItems) reaches the database as a single unit.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from modules.orders.models import Order, OrderItem
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any]) -> Order:
        order = Order(
            user_id=data["user_id"],
            status=data["status"],
            total=data["total"],
        )
        order.save()

        items = data.get("items", [])
        for position, item_data in enumerate(items):
            OrderItem(
                order=order,
                position=position,
                product_id=item_data["product_id"],
                quantity=item_data["quantity"],
                price=item_data["price"],
            ).save()

        logger.info("order.persisted", order_id=str(order.id), item_count=len(items))
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items prefetched.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return Order.objects.prefetch_related("items").filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list_by_user(self, user_id: str, limit: int, offset: int) -> List[Order]:
        queryset = Order.objects.filter(user_id=user_id).order_by("-created_at", "-id")
        return list(queryset[offset : offset + limit])

    def get_items(self, order_id: str) -> List[OrderItem]:
        try:
            return list(OrderItem.objects.filter(order_id=order_id).order_by("position"))
        except (ValueError, ValidationError):
            return []

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update_status(
        self, id: str, status: str, expected_status: Optional[str] = None
    ) -> bool:
        try:
            orders = Order.objects.filter(id=id)
            if expected_status is not None:
                orders = orders.filter(status=expected_status)
            updated = orders.update(
                status=status, updated_at=timezone.now()
            )
        except (ValueError, ValidationError):
            return False
        if updated:
            logger.info("order.status_written", order_id=str(id), status=status)
        return updated > 0
