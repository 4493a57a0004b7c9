"""Order, OrderItem, and OrderStatusHistory models.

Rules implemented here (the service layer drives them):
- Status moves only along ``VALID_TRANSITIONS``; ``completed`` and
  ``voided`` are terminal.
- Every item keeps ``0 <= packed_quantity <= picked_quantity <= quantity``.
  ``OrderItem.apply_delta`` validates a unit change in Python and the
  ``order_items`` check constraints back it up at the database level.
- ``product_code`` is unique within an order.
- Deleting an order removes its items and history (``CASCADE``).
- ``completed_at`` is written once, by the transition into ``completed``.
"""

from __future__ import annotations

from typing import Iterable

import structlog
from django.conf import settings
from django.db import models

from modules.core.models import BaseModel
from modules.orders.constants import (
    PRODUCT_CODE_MAX_LENGTH,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    VOUCHER_NUMBER_MAX_LENGTH,
    OrderStatus,
    TaskPhase,
)
from modules.orders.exceptions import QuantityOutOfBounds

logger = structlog.get_logger(__name__)


class Order(BaseModel):
    """Order aggregate root: one shipment voucher and its line items.

    ``picker`` / ``packer`` record who claimed the pick and pack tasks.
    ``voucher_number`` is the external reference printed on the voucher
    and is immutable once the order exists.
    """

    voucher_number: models.CharField = models.CharField(
        max_length=VOUCHER_NUMBER_MAX_LENGTH, unique=True
    )
    customer_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING,
    )
    picker: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="picked_orders",
    )
    packer: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="packed_orders",
    )
    is_urgent: models.BooleanField = models.BooleanField(default=False)
    notes: models.TextField = models.TextField(blank=True, default="")
    completed_at: models.DateTimeField = models.DateTimeField(
        null=True, blank=True, default=None
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="orders_status_idx"),
            models.Index(fields=["-created_at"], name="orders_created_idx"),
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
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return f"{self.voucher_number} ({self.status})"


class OrderItem(BaseModel):
    """One product line of an order, tracked by picked/packed counters.

    ``quantity`` is fixed at import.  The counters only change through
    ``OrderFulfillmentService.adjust_item_quantity``.
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    product_code: models.CharField = models.CharField(
        max_length=PRODUCT_CODE_MAX_LENGTH
    )
    product_name: models.CharField = models.CharField(
        max_length=255, blank=True, default=""
    )
    quantity: models.PositiveIntegerField = models.PositiveIntegerField(default=0)
    picked_quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )
    packed_quantity: models.PositiveIntegerField = models.PositiveIntegerField(
        default=0
    )

    class Meta:
        db_table = "order_items"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["order", "product_code"],
                name="order_items_product_code_unique",
            ),
            models.CheckConstraint(
                condition=models.Q(picked_quantity__lte=models.F("quantity")),
                name="order_items_picked_within_quantity",
            ),
            models.CheckConstraint(
                condition=models.Q(packed_quantity__lte=models.F("picked_quantity")),
                name="order_items_packed_within_picked",
            ),
        ]

    # ------------------------------------------------------------------
    # Counters
    # ------------------------------------------------------------------

    @property
    def is_picked(self) -> bool:
        return self.picked_quantity == self.quantity

    @property
    def is_packed(self) -> bool:
        return self.packed_quantity == self.quantity

    def apply_delta(self, phase: str, delta: int) -> str:
        """Apply a unit change to the counter of *phase* in memory.

        Returns the name of the changed field so the caller can save only
        that column.

        Raises:
            QuantityOutOfBounds: the chain invariant would be violated.
        """
        if phase == TaskPhase.PICK:
            new_value = self.picked_quantity + delta
            if new_value > self.quantity:
                raise QuantityOutOfBounds(
                    f"Item {self.product_code}: picked quantity cannot exceed "
                    f"ordered quantity {self.quantity}."
                )
            if new_value < self.packed_quantity:
                raise QuantityOutOfBounds(
                    f"Item {self.product_code}: cannot un-pick below packed "
                    f"quantity {self.packed_quantity}."
                )
            self.picked_quantity = new_value
            return "picked_quantity"

        new_value = self.packed_quantity + delta
        if new_value > self.picked_quantity:
            raise QuantityOutOfBounds(
                f"Item {self.product_code}: packed quantity cannot exceed "
                f"picked quantity {self.picked_quantity}."
            )
        if new_value < 0:
            raise QuantityOutOfBounds(
                f"Item {self.product_code}: packed quantity cannot go below 0."
            )
        self.packed_quantity = new_value
        return "packed_quantity"

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def __str__(self) -> str:
        return (
            f"{self.product_code} picked {self.picked_quantity}/{self.quantity} "
            f"packed {self.packed_quantity}/{self.quantity}"
        )


def phase_complete(items: Iterable[OrderItem], phase: str) -> bool:
    """Return ``True`` when every item has finished *phase*."""
    if phase == TaskPhase.PICK:
        return all(item.is_picked for item in items)
    return all(item.is_packed for item in items)


class OrderStatusHistory(BaseModel):
    """Append-only trail of order status transitions.

    ``user`` is ``None`` for transitions the system performs itself (the
    automatic ``picked`` / ``completed`` moves).
    """

    order: models.ForeignKey = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status: models.CharField = models.CharField(  # noqa: DJ01
        max_length=20,
        choices=OrderStatus.choices,
        null=True,
        blank=True,
    )
    new_status: models.CharField = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
    )
    user: models.ForeignKey = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
    )
    notes: models.TextField = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["order", "-created_at"],
                name="osh_order_created_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.order} : {self.old_status} -> {self.new_status}"
