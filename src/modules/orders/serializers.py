"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import DEFAULT_LIST_LIMIT
from modules.orders.models import Order, OrderItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single item in an order creation request."""

    product_id = serializers.CharField(max_length=64)
    quantity = serializers.IntegerField(min_value=1)


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    user_id = serializers.CharField(max_length=64)
    items = CreateOrderItemSerializer(many=True, allow_empty=False)


class UpdateStatusSerializer(serializers.Serializer):
    """Carries the requested status; the saga normalizes and checks it."""

    status = serializers.CharField(allow_blank=True, default="")


class ListByUserQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(required=False, default=DEFAULT_LIST_LIMIT)
    offset = serializers.IntegerField(required=False, default=0)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with the frozen unit price."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "quantity",
            "price",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "status",
            "total",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "user_id",
            "status",
            "total",
            "created_at",
        ]
        read_only_fields = fields
