"""Best-effort change notifications for task boards and dashboards.

Notifications are sent only after the surrounding transaction commits
(``transaction.on_commit``) and are handed to Celery.  Failing to enqueue
is logged and swallowed.  ``FULFILLMENT["NOTIFICATIONS_ENABLED"]`` turns
the whole channel off.
"""

from __future__ import annotations

from typing import Any, Optional
from uuid import UUID

import structlog
from django.conf import settings
from django.db import transaction

from modules.orders.dtos import OrderNotificationDTO

logger = structlog.get_logger(__name__)


class OrderEventNotifier:
    def item_updated(self, order_id: UUID, item: Any, phase: str, delta: int) -> None:
        self._dispatch(
            OrderNotificationDTO(
                type="itemUpdated",
                order_id=order_id,
                payload={
                    "item_id": str(item.id),
                    "product_code": item.product_code,
                    "phase": phase,
                    "delta": delta,
                    "quantity": item.quantity,
                    "picked_quantity": item.picked_quantity,
                    "packed_quantity": item.packed_quantity,
                },
            )
        )

    def status_changed(
        self,
        order_id: UUID,
        old_status: Optional[str],
        new_status: str,
        user_id: Optional[int] = None,
    ) -> None:
        self._dispatch(
            OrderNotificationDTO(
                type="statusChanged",
                order_id=order_id,
                payload={
                    "old_status": old_status,
                    "new_status": new_status,
                    "user_id": user_id,
                },
            )
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _dispatch(self, notification: OrderNotificationDTO) -> None:
        if not settings.FULFILLMENT["NOTIFICATIONS_ENABLED"]:
            return
        message = notification.model_dump(mode="json")
        transaction.on_commit(lambda: self._send(message))

    def _send(self, message: dict) -> None:
        from modules.orders.tasks import broadcast_order_event

        try:
            broadcast_order_event.delay(message)
        except Exception as exc:
            logger.warning(
                "order.notification_failed",
                order_id=message.get("order_id"),
                notification_type=message.get("type"),
                error=str(exc),
            )
