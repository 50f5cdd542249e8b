"""Order repository interface.

Extends ``IRepository[Order]`` with what the order saga needs: atomic
creation of an order with its frozen line items, look-ups by id and by
user, and the status overwrite used by status transitions.

The Service Layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.models import Order, OrderItem


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes its OrderItem children.  Creation must be
    atomic: either the order and every item are stored, or nothing is.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any]) -> Order:
        """Create an order with its items atomically.

        ``data`` must include ``user_id``, ``status``, ``total`` and
        ``items`` (list of dicts with ``product_id``, ``quantity`` and the
        frozen unit ``price``), in caller order.
        """

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with prefetched items, or ``None``."""

    @abstractmethod
    def list_by_user(self, user_id: str, limit: int, offset: int) -> List[Order]:
        """List a user's orders, newest first, one page at a time."""

    @abstractmethod
    def update_status(
        self, id: str, status: str, expected_status: Optional[str] = None
    ) -> bool:
        """Overwrite the status of an order.

        With *expected_status* the write only applies while the order still
        holds that status.  Returns ``False`` when no row was written.
        """

    @abstractmethod
    def get_items(self, order_id: str) -> List[OrderItem]:
        """Return the line items of an order in creation order."""
