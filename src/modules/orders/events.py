"""Domain events for the fulfillment bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Type

from shared.domain.events import DomainEvent


@dataclass(frozen=True)
class ItemQuantityChanged(DomainEvent):
    """Raised when a picked or packed counter of an item changes."""


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    """Raised when an order status changes."""


NOTIFICATION_EVENTS: Dict[str, Type[DomainEvent]] = {
    "itemUpdated": ItemQuantityChanged,
    "statusChanged": OrderStatusChanged,
}
