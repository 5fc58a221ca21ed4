from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders.events import (
            OrderCreated,
            OrderTransitioned,
            SideEffectRequested,
        )
        from modules.orders.handlers import (
            order_created_handler,
            order_transitioned_handler,
            side_effect_requested_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderCreated, order_created_handler)
        event_bus.subscribe(OrderTransitioned, order_transitioned_handler)
        event_bus.subscribe(SideEffectRequested, side_effect_requested_handler)
