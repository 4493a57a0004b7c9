"""Celery tasks of the orders module."""

from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

import structlog
from celery import shared_task

from modules.orders.events import NOTIFICATION_EVENTS
from shared.infrastructure.bus import event_bus

logger = structlog.get_logger(__name__)


@shared_task(name="orders.broadcast_order_event")
def broadcast_order_event(notification: Dict[str, Any]) -> Dict[str, str]:
    """Publish a fulfillment notification to the subscribed observers."""
    event_class = NOTIFICATION_EVENTS[notification["type"]]
    event = event_class(
        aggregate_id=UUID(str(notification["order_id"])),
        payload=notification.get("payload", {}),
    )
    event_bus.publish(event)
    logger.info(
        "order.notification.broadcast",
        order_id=str(event.aggregate_id),
        event_name=event.event_name,
    )
    return {"event_id": str(event.event_id), "event_name": event.event_name}
