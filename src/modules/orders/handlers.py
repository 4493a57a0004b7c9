"""Event handlers for fulfillment domain events.

These are the default observers wired on the in-process bus; task boards
and dashboards subscribe their own handlers next to them.
"""

from __future__ import annotations

import structlog

from modules.orders.events import ItemQuantityChanged, OrderStatusChanged
from shared.domain.bus import IEventHandler

logger = structlog.get_logger(__name__)


class ItemQuantityChangedHandler(IEventHandler[ItemQuantityChanged]):
    def handle(self, event: ItemQuantityChanged) -> None:
        logger.info(
            f"Item {event.payload.get('product_code')} of order "
            f"{event.aggregate_id} updated",
            order_id=str(event.aggregate_id),
            phase=event.payload.get("phase"),
            picked_quantity=event.payload.get("picked_quantity"),
            packed_quantity=event.payload.get("packed_quantity"),
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        logger.info(
            f"Order {event.aggregate_id} moved to {event.payload.get('new_status')}",
            order_id=str(event.aggregate_id),
            old_status=event.payload.get("old_status"),
            new_status=event.payload.get("new_status"),
        )


item_quantity_changed_handler = ItemQuantityChangedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
