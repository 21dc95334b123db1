"""Real-time fan-out for delivery partner events."""

from __future__ import annotations

import structlog

from modules.delivery.events import PartnerAvailabilityChanged, PartnerLocationUpdated
from shared.domain.events import IEventHandler
from shared.infrastructure.notifier import (
    customer_channel,
    delivery_channel,
    get_notifier,
)

logger = structlog.get_logger(__name__)


class PartnerAvailabilityChangedHandler(IEventHandler[PartnerAvailabilityChanged]):
    def handle(self, event: PartnerAvailabilityChanged) -> None:
        get_notifier().publish(
            delivery_channel(event.aggregate_id),
            "availability-changed",
            {"partnerId": str(event.aggregate_id), "isOnline": event.is_online},
        )


class PartnerLocationUpdatedHandler(IEventHandler[PartnerLocationUpdated]):
    def handle(self, event: PartnerLocationUpdated) -> None:
        notifier = get_notifier()
        for order_id, customer_id in event.active_orders:
            notifier.publish(
                customer_channel(customer_id),
                "delivery-location-updated",
                {
                    "orderId": str(order_id),
                    "partnerId": str(event.aggregate_id),
                    "latitude": str(event.latitude),
                    "longitude": str(event.longitude),
                },
            )
        logger.debug(
            "delivery.location_fanned_out",
            partner_id=str(event.aggregate_id),
            orders=len(event.active_orders),
        )


partner_availability_changed_handler = PartnerAvailabilityChangedHandler()
partner_location_updated_handler = PartnerLocationUpdatedHandler()
