"""Order service layer (Use Cases).

Orchestrates order creation as a saga against two services this one does
not own: the stock catalog (price and stock per product) and the identity
service (user existence).  Remote stock cannot take part in a database
transaction, so every reservation is recorded and undone in reverse order
when a later step fails.

Business rules enforced:
- The user must be known to the identity service before any stock moves.
- Every line is priced from the catalog and the unit price is frozen.
- Stock is reserved per line, in caller order; a failure compensates the
  reservations already made and surfaces the original error.
- ``total`` is the sum of ``quantity * price`` over the frozen lines.
- Status transitions follow ``VALID_TRANSITIONS``; only
  ``pending -> canceled`` hands stock back to the catalog.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

import structlog
from django.db import DatabaseError

from modules.orders.clients.exceptions import (
    CatalogError,
    CatalogInsufficientStock,
    CatalogProductNotFound,
    CollaboratorError,
    IdentityUnavailable,
)
from modules.orders.constants import (
    DEFAULT_LIST_LIMIT,
    RESTOCK_TRANSITIONS,
    OrderStatus,
    normalize_page,
    quantize_money,
)
from modules.orders.exceptions import (
    InsufficientStock,
    InvalidStatus,
    InvalidStatusTransition,
    InvalidUser,
    OrderError,
    OrderNotFound,
    OrderPersistenceError,
    ProductNotFound,
    ServiceUnavailable,
)

if TYPE_CHECKING:
    from modules.orders.clients.interfaces import (
        IIdentityValidator,
        IStockCatalogClient,
    )
    from modules.orders.dtos import CreateOrderDTO
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


def _translate_catalog_error(exc: CatalogError) -> OrderError:
    """Map a catalog failure onto the order error taxonomy."""
    if isinstance(exc, CatalogProductNotFound):
        return ProductNotFound(f"Product {exc.product_id} not found.")
    if isinstance(exc, CatalogInsufficientStock):
        return InsufficientStock(
            f"Insufficient stock for product {exc.product_id}."
        )
    return ServiceUnavailable(f"Stock catalog unavailable: {exc}")


class OrderSaga:
    """Application service for Order use-cases.

    Receives the repository and both collaborators via constructor
    injection (DIP).  Holds no per-request state: the reservation log of
    a creation lives on the stack of ``create_order``.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        catalog: IStockCatalogClient,
        identity: IIdentityValidator,
    ) -> None:
        self._order_repo = order_repository
        self._catalog = catalog
        self._identity = identity

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def create_order(self, dto: CreateOrderDTO) -> Order:
        """Create a new order, reserving remote stock line by line.

        Steps:
        1. Validate the user against the identity service.
        2. For each item, in caller order:
           - Fetch the product snapshot and freeze its price.
           - Reserve ``quantity`` units (``adjust_stock(-quantity)``).
           - Record the reservation.
        3. Persist order + items atomically with status ``pending``.

        Any failure in 2 or 3 releases the recorded reservations in reverse
        order before the error is raised.  Unexpected errors are
        re-raised unchanged once the reservations are released.

        Raises:
            InvalidUser: unknown user, or identity service unavailable.
            ProductNotFound: a product is unknown to the catalog.
            InsufficientStock: the catalog refused a reservation.
            ServiceUnavailable: the catalog could not be reached.
            OrderPersistenceError: the order could not be stored.
        """
        log = logger.bind(user_id=dto.user_id, item_count=len(dto.items))
        log.info("order.creation_started")

        # 1. Validate user
        self._check_user(dto.user_id)

        # 2. Price and reserve every line
        reserved: List[Tuple[str, int]] = []
        repo_items: List[Dict[str, Any]] = []
        total = Decimal("0.00")

        for item_dto in dto.items:
            try:
                snapshot = self._catalog.fetch_snapshot(item_dto.product_id)
                price = quantize_money(snapshot.price)
                self._catalog.adjust_stock(item_dto.product_id, -item_dto.quantity)
            except CatalogError as exc:
                error = _translate_catalog_error(exc)
                log.warning(
                    "order.reservation_failed",
                    product_id=item_dto.product_id,
                    quantity=item_dto.quantity,
                    error_code=error.code,
                    error=str(exc),
                )
                self._compensate(reserved)
                raise error from exc
            except Exception:
                log.exception(
                    "order.reservation_aborted",
                    product_id=item_dto.product_id,
                    quantity=item_dto.quantity,
                )
                self._compensate(reserved)
                raise

            reserved.append((item_dto.product_id, item_dto.quantity))
            total += item_dto.quantity * price
            repo_items.append(
                {
                    "product_id": item_dto.product_id,
                    "quantity": item_dto.quantity,
                    "price": price,
                }
            )
            log.info(
                "order.stock_reserved",
                product_id=item_dto.product_id,
                quantity=item_dto.quantity,
                price=str(price),
            )

        # 3. Persist order + items
        try:
            order = self._order_repo.create(
                {
                    "user_id": dto.user_id,
                    "status": OrderStatus.PENDING,
                    "total": quantize_money(total),
                    "items": repo_items,
                }
            )
        except DatabaseError as exc:
            log.error("order.persist_failed", error=str(exc))
            self._compensate(reserved)
            raise OrderPersistenceError("create order error") from exc
        except Exception:
            log.exception("order.persist_aborted")
            self._compensate(reserved)
            raise

        log.info("order.created", order_id=str(order.id), total=str(order.total))

        # Re-fetch with prefetch for output
        order_with_items = self._order_repo.get_by_id(str(order.id))
        return order_with_items or order

    def update_status(self, order_id: str, requested_status: str) -> Order:
        """Move an order to *requested_status*.

        The requested value is trimmed and lower-cased.  Requesting the
        current status is a no-op.  ``pending -> canceled`` releases the
        reserved stock of every item (best-effort) before the new status
        is written.

        Raises:
            InvalidStatus: unknown status value.
            OrderNotFound: order does not exist.
            InvalidStatusTransition: the order cannot reach that status.
            OrderPersistenceError: the status write failed.
        """
        new_status = (requested_status or "").strip().lower()
        if new_status not in OrderStatus.values:
            raise InvalidStatus(f"Invalid status: {requested_status!r}.")

        order = self.get_order(order_id)
        log = logger.bind(
            order_id=str(order.id),
            current_status=order.status,
            new_status=new_status,
        )

        if order.status == new_status:
            log.info("order.status_unchanged")
            return order

        if not order.can_transition_to(new_status):
            log.warning("order.invalid_transition")
            raise InvalidStatusTransition(
                f"Cannot transition from {order.status} to {new_status}."
            )

        if (order.status, new_status) in RESTOCK_TRANSITIONS:
            self._restock(order)

        try:
            updated = self._order_repo.update_status(
                str(order.id), new_status, expected_status=order.status
            )
        except DatabaseError as exc:
            log.error("order.status_write_failed", error=str(exc))
            raise OrderPersistenceError("update order status error") from exc
        if not updated:
            # Either deleted or moved by a concurrent request since the read.
            current = self._order_repo.get_by_id(str(order.id))
            if current is None:
                raise OrderNotFound(f"Order {order_id} not found.")
            log.warning("order.status_changed_concurrently", actual_status=current.status)
            raise InvalidStatusTransition(
                f"Cannot transition from {current.status} to {new_status}."
            )

        log.info("order.status_updated")
        return self.get_order(str(order.id))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str) -> Order:
        """Retrieve a single order with its items.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self._order_repo.get_by_id(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order

    def list_orders_by_user(
        self,
        user_id: str,
        limit: int = DEFAULT_LIST_LIMIT,
        offset: int = 0,
    ) -> List[Order]:
        """Return a page of a user's orders, newest first.

        A limit outside ``1..MAX_LIST_LIMIT`` falls back to the default;
        a negative offset is treated as 0.
        """
        limit, offset = normalize_page(limit, offset)
        return self._order_repo.list_by_user(user_id, limit, offset)

    def get_order_items(self, order_id: str) -> List[OrderItem]:
        """Return the line items of an order.

        Raises:
            OrderNotFound: if the order does not exist.
        """
        order = self.get_order(order_id)
        return self._order_repo.get_items(str(order.id))

    # ------------------------------------------------------------------
    # Saga steps
    # ------------------------------------------------------------------

    def _check_user(self, user_id: str) -> None:
        try:
            valid = self._identity.validate(user_id)
        except IdentityUnavailable as exc:
            logger.error("order.identity_unavailable", user_id=user_id, error=str(exc))
            raise InvalidUser(
                f"Could not validate user {user_id}.",
                reason=InvalidUser.IDENTITY_UNAVAILABLE,
            ) from exc
        if not valid:
            logger.warning("order.identity_rejected", user_id=user_id)
            raise InvalidUser(f"User {user_id} is not valid.")

    def _compensate(self, reserved: List[Tuple[str, int]]) -> None:
        """Release *reserved* in reverse order.

        Best-effort: a failed release is logged and not retried, and the
        walk continues with the next entry.
        """
        for product_id, quantity in reversed(reserved):
            try:
                self._catalog.adjust_stock(product_id, quantity)
            except CollaboratorError as exc:
                logger.error(
                    "order.compensation_failed",
                    product_id=product_id,
                    quantity=quantity,
                    error=str(exc),
                )
            else:
                logger.info(
                    "order.stock_released",
                    product_id=product_id,
                    quantity=quantity,
                )

    def _restock(self, order: Order) -> None:
        for item in order.items.all():
            try:
                self._catalog.adjust_stock(item.product_id, item.quantity)
            except CollaboratorError as exc:
                logger.error(
                    "order.restock_failed",
                    order_id=str(order.id),
                    product_id=item.product_id,
                    quantity=item.quantity,
                    error=str(exc),
                )
            else:
                logger.info(
                    "order.stock_released",
                    order_id=str(order.id),
                    product_id=item.product_id,
                    quantity=item.quantity,
                )
