from django.apps import AppConfig


class DeliveryConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.delivery"
    label = "delivery"

    def ready(self) -> None:
        from modules.delivery.events import (
            PartnerAvailabilityChanged,
            PartnerLocationUpdated,
        )
        from modules.delivery.handlers import (
            partner_availability_changed_handler,
            partner_location_updated_handler,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(
            PartnerAvailabilityChanged, partner_availability_changed_handler
        )
        event_bus.subscribe(PartnerLocationUpdated, partner_location_updated_handler)
