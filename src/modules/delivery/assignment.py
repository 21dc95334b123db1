"""Delivery assignment policies.

A policy answers one question: which partner should carry this ready
order?  ``None`` is a valid answer (nobody is online); the order then
stays ``ready`` without a partner until the periodic sweep or a partner's
self-assignment picks it up.

The active policy is chosen with ``settings.DELIVERY_ASSIGNMENT_POLICY``.
"""

from __future__ import annotations

import math
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Optional

import structlog
from django.conf import settings
from django.utils.module_loading import import_string

from modules.delivery.repositories.django_repository import (
    DeliveryPartnerDjangoRepository,
)

if TYPE_CHECKING:
    from modules.delivery.models import DeliveryPartner
    from modules.delivery.repositories.interfaces import IDeliveryPartnerRepository
    from modules.orders.models import Order

logger = structlog.get_logger(__name__)

EARTH_RADIUS_KM = 6371.0


class AssignmentPolicy(ABC):
    def __init__(self, repository: Optional[IDeliveryPartnerRepository] = None) -> None:
        self._repo = repository or DeliveryPartnerDjangoRepository()

    @abstractmethod
    def find_partner_for(self, order: Order) -> Optional[DeliveryPartner]:
        """Pick an available partner for *order*, or ``None``."""


class FirstAvailablePolicy(AssignmentPolicy):
    """First approved, active, online partner (longest online first)."""

    def find_partner_for(self, order: Order) -> Optional[DeliveryPartner]:
        partner = self._repo.find_available().first()
        logger.info(
            "assignment.candidate_selected",
            policy="first_available",
            order_id=str(order.id),
            partner_id=str(partner.id) if partner else None,
        )
        return partner


class NearestAvailablePolicy(AssignmentPolicy):
    """Nearest available partner to the vendor by great-circle distance.

    Partners without a known location rank after every located partner.
    Falls back to first-available when the vendor has no coordinates.
    """

    def find_partner_for(self, order: Order) -> Optional[DeliveryPartner]:
        candidates = list(self._repo.find_available())
        if not candidates:
            return None

        vendor = order.vendor
        if vendor.latitude is None or vendor.longitude is None:
            return candidates[0]

        def sort_key(partner: DeliveryPartner):
            if partner.latitude is None or partner.longitude is None:
                return (1, 0.0)
            return (
                0,
                haversine_km(
                    float(vendor.latitude),
                    float(vendor.longitude),
                    float(partner.latitude),
                    float(partner.longitude),
                ),
            )

        partner = min(candidates, key=sort_key)
        logger.info(
            "assignment.candidate_selected",
            policy="nearest_available",
            order_id=str(order.id),
            partner_id=str(partner.id),
            candidates=len(candidates),
        )
        return partner


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two points, in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lon2 - lon1)
    a = (
        math.sin(dphi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    )
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def get_assignment_policy() -> AssignmentPolicy:
    policy_class = import_string(settings.DELIVERY_ASSIGNMENT_POLICY)
    return policy_class()
