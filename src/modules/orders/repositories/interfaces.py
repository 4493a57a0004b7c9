"""Order repository interface.

Extends ``IRepository[Order]`` with what the fulfillment state machine
needs from the store: a row lock on a single item, compare-and-set on the
order status, and the status history trail.

The service layer depends exclusively on this contract (DIP).
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Iterable, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.orders.dtos import ImportOrderDTO
    from modules.orders.models import Order, OrderItem, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The Order aggregate includes OrderItem children and
    OrderStatusHistory records.
    """

    @abstractmethod
    def create(self, dto: ImportOrderDTO) -> Order:
        """Create a ``pending`` order with its items (all counters zero)."""

    @abstractmethod
    def get_by_voucher_number(self, voucher_number: str) -> Optional[Order]:
        """Retrieve an order by its external voucher number."""

    @abstractmethod
    def get_item_for_update(self, order_id: UUID, product_code: str) -> Optional[OrderItem]:
        """Lock and return the item of *order_id* with *product_code*."""

    @abstractmethod
    def save_item(self, item: OrderItem, field: str) -> None:
        """Persist a single counter column of *item*."""

    @abstractmethod
    def get_items(self, order_id: UUID) -> List[OrderItem]:
        """Read every item of the order, fresh from the store."""

    @abstractmethod
    def transition_status(
        self,
        order_id: UUID,
        expected: Iterable[str],
        new_status: str,
        **fields: Any,
    ) -> bool:
        """Set *new_status* only if the current status is in *expected*.

        Returns ``True`` when this call performed the transition.
        """

    @abstractmethod
    def lock_order_status(self, order_id: UUID) -> Optional[str]:
        """Lock the order row and return its current status.

        Serializes order-level re-evaluation between concurrent item
        mutations of the same order.
        """

    @abstractmethod
    def set_urgent(self, order_id: UUID, is_urgent: bool) -> bool:
        """Update the urgency flag; ``False`` if the order does not exist."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        old_status: Optional[str],
        new_status: str,
        user: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's history."""

    @abstractmethod
    def list_tasks(self, user_id: Optional[int], role: str) -> List[Order]:
        """Orders on the task board of a user with *role*."""
