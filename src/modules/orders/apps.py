from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.orders import handlers
        from modules.orders.events import (
            DeliveryPartnerAssigned,
            OrderAutoCancelled,
            OrderCompleted,
            OrderPlaced,
            OrderRated,
            OrderStatusChanged,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderPlaced, handlers.order_placed_handler)
        event_bus.subscribe(OrderStatusChanged, handlers.order_status_changed_handler)
        event_bus.subscribe(
            DeliveryPartnerAssigned, handlers.delivery_partner_assigned_handler
        )
        event_bus.subscribe(OrderCompleted, handlers.order_completed_handler)
        event_bus.subscribe(OrderAutoCancelled, handlers.order_auto_cancelled_handler)
        event_bus.subscribe(OrderRated, handlers.order_rated_handler)
        event_bus.subscribe(OrderPlaced, handlers.order_confirmation_email_handler)
        event_bus.subscribe(OrderStatusChanged, handlers.order_status_email_handler)
