"""Domain events for delivery partners."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Tuple
from uuid import UUID

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class PartnerAvailabilityChanged(DomainEvent):
    is_online: bool


@dataclass(frozen=True, kw_only=True)
class PartnerLocationUpdated(DomainEvent):
    """``active_orders`` holds ``(order_id, customer_id)`` pairs in transit."""

    latitude: Decimal
    longitude: Decimal
    active_orders: Tuple[Tuple[UUID, UUID], ...] = field(default_factory=tuple)
