"""Order API views.

Exposes the ``OrderSaga`` via HTTP using DRF ViewSets.
Domain exceptions are caught and translated into the HTTP status and
stable ``code`` they carry; the view never swallows generic exceptions.
"""

from __future__ import annotations

import pydantic
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.core.exceptions import VALIDATION_ERROR_CODE
from modules.orders.clients import get_identity_validator, get_stock_catalog_client
from modules.orders.constants import normalize_page
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.exceptions import OrderError
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    CreateOrderSerializer,
    ListByUserQuerySerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    UpdateStatusSerializer,
)
from modules.orders.services import OrderSaga


def _error_response(exc: OrderError) -> Response:
    return Response(
        {"detail": str(exc), "code": exc.code},
        status=exc.http_status,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderSaga`` with the injected repository and collaborator
    clients (DIP).  Does **not** extend ``ModelViewSet``: all ORM access
    goes through the service/repository layer.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = OrderSaga(
            order_repository=OrderDjangoRepository(),
            catalog=get_stock_catalog_client(),
            identity=get_identity_validator(),
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        try:
            dto = CreateOrderDTO(
                user_id=data["user_id"],
                items=[
                    CreateOrderItemDTO(
                        product_id=item["product_id"],
                        quantity=item["quantity"],
                    )
                    for item in data["items"]
                ],
            )
        except pydantic.ValidationError as exc:
            return Response(
                {
                    "detail": "Invalid request.",
                    "code": VALIDATION_ERROR_CODE,
                    "errors": exc.errors(include_url=False, include_context=False),
                },
                status=status.HTTP_400_BAD_REQUEST,
            )

        try:
            order = self._service.create_order(dto)
        except OrderError as exc:
            return _error_response(exc)

        out = OrderSerializer(order)
        return Response(out.data, status=status.HTTP_201_CREATED)

    # ------------------------------------------------------------------
    # Retrieve
    # ------------------------------------------------------------------

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /orders/{pk}/"""
        try:
            order = self._service.get_order(pk or "")
        except OrderError as exc:
            return _error_response(exc)
        serializer = OrderSerializer(order)
        return Response(serializer.data)

    @action(detail=True, methods=["get"])
    def items(self, request: Request, pk: str | None = None) -> Response:
        """GET /orders/{pk}/items/"""
        try:
            items = self._service.get_order_items(pk or "")
        except OrderError as exc:
            return _error_response(exc)
        serializer = OrderItemSerializer(items, many=True)
        return Response({"items": serializer.data})

    @action(detail=False, methods=["get"], url_path=r"user/(?P<user_id>[^/.]+)")
    def by_user(self, request: Request, user_id: str | None = None) -> Response:
        """GET /orders/user/{user_id}/?limit=&offset="""
        query = ListByUserQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)

        limit = query.validated_data["limit"]
        offset = query.validated_data["offset"]
        orders = self._service.list_orders_by_user(user_id or "", limit, offset)

        limit, offset = normalize_page(limit, offset)
        serializer = OrderListSerializer(orders, many=True)
        return Response(
            {"items": serializer.data, "limit": limit, "offset": offset}
        )

    # ------------------------------------------------------------------
    # Status Update
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /orders/{pk}/status/

        ``pending -> canceled`` releases the reserved stock of every item.
        """
        status_serializer = UpdateStatusSerializer(data=request.data)
        status_serializer.is_valid(raise_exception=True)

        try:
            order = self._service.update_status(
                order_id=pk or "",
                requested_status=status_serializer.validated_data["status"],
            )
        except OrderError as exc:
            return _error_response(exc)

        serializer = OrderSerializer(order)
        return Response(serializer.data)
