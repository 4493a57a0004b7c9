from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import ItemQuantityChanged, OrderStatusChanged
        from modules.orders.handlers import (
            item_quantity_changed_handler,
            order_status_changed_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(ItemQuantityChanged, item_quantity_changed_handler)
        event_bus.subscribe(OrderStatusChanged, order_status_changed_handler)
