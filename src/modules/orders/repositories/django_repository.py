"""Django ORM implementation of the Order repository.

Concurrency control:
- item counters are changed under ``select_for_update()`` on the single
  item row, so concurrent scans of the same item are serialized;
- ``lock_order_status`` locks the order row for the status recheck that
  follows every counter change, so scans of one order serialize from that
  point until commit;
- order status changes are conditional ``UPDATE ... WHERE status IN (...)``
  statements, so exactly one of several concurrent claimants wins.

Nothing is cached between calls; every read goes to the database.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from modules.core.roles import UserRole
from modules.orders.constants import TERMINAL_STATES, OrderStatus
from modules.orders.dtos import ImportOrderDTO
from modules.orders.models import Order, OrderItem, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, dto: ImportOrderDTO) -> Order:
        order = Order.objects.create(
            voucher_number=dto.voucher_number,
            customer_name=dto.customer_name,
            notes=dto.notes or "",
            is_urgent=dto.is_urgent,
        )
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_code=item.product_code,
                    product_name=item.product_name,
                    quantity=item.quantity,
                )
                for item in dto.items
            ]
        )

        logger.info(
            "order.persisted", order_id=str(order.id), item_count=len(dto.items)
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with its items prefetched.

        Returns ``None`` for non-existent or malformed IDs.
        """
        try:
            return (
                Order.objects.select_related("picker", "packer")
                .prefetch_related("items", "status_history")
                .filter(id=id)
                .first()
            )
        except (ValueError, ValidationError):
            return None

    def get_by_voucher_number(self, voucher_number: str) -> Optional[Order]:
        return Order.objects.filter(voucher_number=voucher_number).first()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet[Order]:
        """List orders with optional filters and eager-loaded relations.

        Supported filter keys are any ``Order`` field lookups, e.g.
        ``status``, ``is_urgent`` or ``created_at__range``.  The result is a
        lazy queryset so the API layer can filter, order and paginate it.
        """
        queryset = Order.objects.select_related("picker", "packer").prefetch_related(
            "items"
        )
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def list_tasks(self, user_id: Optional[int], role: str) -> List[Order]:
        if role == UserRole.ADMIN:
            condition = ~Q(status__in=TERMINAL_STATES)
        elif role == UserRole.PICKER:
            condition = Q(status=OrderStatus.PENDING) | Q(
                status=OrderStatus.PICKING, picker_id=user_id
            )
        elif role == UserRole.PACKER:
            condition = Q(status=OrderStatus.PICKED) | Q(
                status=OrderStatus.PACKING, packer_id=user_id
            )
        else:
            return []
        return list(
            Order.objects.filter(condition)
            .select_related("picker", "packer")
            .prefetch_related("items")
            .order_by("-is_urgent", "created_at")
        )

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def get_item_for_update(self, order_id: UUID, product_code: str) -> Optional[OrderItem]:
        """Lock the single item row (SELECT FOR UPDATE).

        Must run inside ``transaction.atomic()``; the lock is held until the
        surrounding transaction ends.
        """
        return (
            OrderItem.objects.select_for_update()
            .filter(order_id=order_id, product_code=product_code)
            .first()
        )

    def save_item(self, item: OrderItem, field: str) -> None:
        item.save(update_fields=[field])

    def get_items(self, order_id: UUID) -> List[OrderItem]:
        return list(OrderItem.objects.filter(order_id=order_id))

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def transition_status(
        self,
        order_id: UUID,
        expected: Iterable[str],
        new_status: str,
        **fields: Any,
    ) -> bool:
        updated = Order.objects.filter(id=order_id, status__in=list(expected)).update(
            status=new_status, updated_at=timezone.now(), **fields
        )
        logger.debug(
            "order.status_cas",
            order_id=str(order_id),
            new_status=new_status,
            applied=bool(updated),
        )
        return updated == 1

    def lock_order_status(self, order_id: UUID) -> Optional[str]:
        return (
            Order.objects.select_for_update()
            .filter(id=order_id)
            .values_list("status", flat=True)
            .first()
        )

    def set_urgent(self, order_id: UUID, is_urgent: bool) -> bool:
        updated = Order.objects.filter(id=order_id).update(
            is_urgent=is_urgent, updated_at=timezone.now()
        )
        return updated == 1

    def add_history(
        self,
        order_id: UUID,
        old_status: Optional[str],
        new_status: str,
        user: Any = None,
        notes: str = "",
    ) -> OrderStatusHistory:
        """Record a status change in the order's history."""
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            new_status=new_status,
            user_id=getattr(user, "pk", None),
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=new_status,
        )
        return history

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    @transaction.atomic
    def delete(self, id: str) -> bool:
        """Hard-delete an order; items and history cascade."""
        order = self.get_by_id(id)
        if not order:
            return False
        order.delete()
        logger.info("order.deleted", order_id=str(id))
        return True
