"""Domain events for the Orders bounded context.

Events carry every field their subscribers need so that handlers never
read the database: they run after the transaction and must not observe a
later state than the one that produced them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class OrderPlaced(DomainEvent):
    order_number: str
    customer_id: UUID
    customer_name: str
    vendor_id: UUID
    order_type: str
    total: Decimal
    items: Tuple[Dict[str, Any], ...] = field(default_factory=tuple)
    delivery_address: Dict[str, Any] = field(default_factory=dict)
    customer_email: str = ""


@dataclass(frozen=True, kw_only=True)
class OrderStatusChanged(DomainEvent):
    order_number: str
    customer_id: UUID
    vendor_id: UUID
    delivery_partner_id: Optional[UUID]
    old_status: str
    new_status: str
    order_type: str
    message: str
    actor_role: str
    customer_email: str = ""


@dataclass(frozen=True, kw_only=True)
class DeliveryPartnerAssigned(DomainEvent):
    order_number: str
    partner_id: UUID
    vendor_id: UUID
    customer_id: UUID
    total: Decimal
    delivery_address: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, kw_only=True)
class OrderCompleted(DomainEvent):
    """The order reached ``picked_up`` or ``delivered``."""

    order_number: str
    vendor_id: UUID
    status: str
    total: Decimal


@dataclass(frozen=True, kw_only=True)
class OrderAutoCancelled(DomainEvent):
    order_number: str
    vendor_id: UUID
    customer_id: UUID
    reason: str


@dataclass(frozen=True, kw_only=True)
class OrderRated(DomainEvent):
    order_number: str
    vendor_id: UUID
    delivery_partner_id: Optional[UUID]
    overall: int
    food: Optional[int] = None
    delivery: Optional[int] = None
    review: str = ""
