"""Delivery partner use cases: going online/offline and location updates.

Both feed the assignment policies: only online partners are candidates,
and ``NearestAvailablePolicy`` ranks them by their last reported position.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

import structlog
from django.db import transaction
from django.utils import timezone

from modules.core.actors import Actor, Role
from modules.core.exceptions import AccessDenied, InvalidData
from modules.delivery.events import PartnerAvailabilityChanged, PartnerLocationUpdated
from modules.delivery.exceptions import DeliveryPartnerNotFound, PartnerNotApproved
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.delivery.models import DeliveryPartner
    from modules.delivery.repositories.interfaces import IDeliveryPartnerRepository
    from modules.orders.repositories.interfaces import IOrderRepository
    from shared.domain.events import IEventBus

logger = structlog.get_logger(__name__)


class DeliveryPartnerService:
    def __init__(
        self,
        partner_repository: IDeliveryPartnerRepository,
        order_repository: IOrderRepository,
        bus: Optional[IEventBus] = None,
    ) -> None:
        self._partner_repo = partner_repository
        self._order_repo = order_repository
        self._bus = bus or event_bus

    def toggle_online(self, actor: Actor) -> DeliveryPartner:
        """Flip the partner's availability.

        Raises:
            AccessDenied: the actor is not a delivery partner.
            PartnerNotApproved: going online requires an approved, active profile.
        """
        partner = self._get_partner(actor)
        going_online = not partner.is_online
        if going_online and not partner.is_approved:
            raise PartnerNotApproved()

        values = {"is_online": going_online}
        if going_online:
            values["last_online_at"] = timezone.now()
        with transaction.atomic():
            self._partner_repo.update_fields(partner.id, **values)
        for field_name, value in values.items():
            setattr(partner, field_name, value)

        logger.info(
            "delivery.availability_changed",
            partner_id=str(partner.id),
            is_online=going_online,
        )
        self._bus.publish(
            PartnerAvailabilityChanged(aggregate_id=partner.id, is_online=going_online)
        )
        return partner

    def update_location(
        self, actor: Actor, latitude: Decimal, longitude: Decimal
    ) -> DeliveryPartner:
        """Store the partner's position and tell customers awaiting their orders.

        Raises:
            InvalidData: coordinates out of range.
        """
        if not Decimal("-90") <= latitude <= Decimal("90"):
            raise InvalidData("Latitude must be between -90 and 90.")
        if not Decimal("-180") <= longitude <= Decimal("180"):
            raise InvalidData("Longitude must be between -180 and 180.")

        partner = self._get_partner(actor)
        now = timezone.now()
        with transaction.atomic():
            self._partner_repo.update_fields(
                partner.id,
                latitude=latitude,
                longitude=longitude,
                location_updated_at=now,
            )
        partner.latitude = latitude
        partner.longitude = longitude
        partner.location_updated_at = now

        active_orders = tuple(
            (order.id, order.customer_id)
            for order in self._order_repo.find_in_transit(partner.id)
        )
        logger.info(
            "delivery.location_updated",
            partner_id=str(partner.id),
            active_orders=len(active_orders),
        )
        self._bus.publish(
            PartnerLocationUpdated(
                aggregate_id=partner.id,
                latitude=latitude,
                longitude=longitude,
                active_orders=active_orders,
            )
        )
        return partner

    def _get_partner(self, actor: Actor) -> DeliveryPartner:
        if actor.role != Role.DELIVERY:
            raise AccessDenied("Only delivery partners can do this.")
        partner = self._partner_repo.get_by_id(str(actor.entity_id))
        if partner is None:
            raise DeliveryPartnerNotFound()
        return partner
