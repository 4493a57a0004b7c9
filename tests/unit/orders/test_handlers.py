"""Unit tests for fulfillment event handlers."""

from __future__ import annotations

import logging
from uuid import uuid4

import pytest

from modules.orders.events import ItemQuantityChanged, OrderStatusChanged
from modules.orders.handlers import ItemQuantityChangedHandler, OrderStatusChangedHandler

pytestmark = pytest.mark.unit


def test_item_quantity_changed_handler_logs(caplog):
    handler = ItemQuantityChangedHandler()
    event = ItemQuantityChanged(
        aggregate_id=uuid4(),
        payload={"product_code": "SKU-A", "phase": "pick", "picked_quantity": 1},
    )

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        handler.handle(event)

    assert any("Item SKU-A of order" in record.getMessage() for record in caplog.records)


def test_order_status_changed_handler_logs(caplog):
    handler = OrderStatusChangedHandler()
    event = OrderStatusChanged(
        aggregate_id=uuid4(),
        payload={"old_status": "picking", "new_status": "picked"},
    )

    with caplog.at_level(logging.INFO, logger="modules.orders.handlers"):
        handler.handle(event)

    assert any("moved to picked" in record.getMessage() for record in caplog.records)


def test_handlers_are_subscribed_on_app_ready():
    from modules.orders.handlers import (
        item_quantity_changed_handler,
        order_status_changed_handler,
    )
    from shared.infrastructure.bus import event_bus

    assert item_quantity_changed_handler in event_bus._handlers[ItemQuantityChanged]
    assert order_status_changed_handler in event_bus._handlers[OrderStatusChanged]
