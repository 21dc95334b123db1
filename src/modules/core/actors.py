"""Who is acting on an order.

Every order use case takes an ``Actor`` rather than a Django user, so
the same code path serves HTTP requests, Celery workers (``Actor.system()``)
and the admin.  ``resolve_actor`` maps an authenticated user to one role by
looking at which marketplace profile the user owns.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional
from uuid import UUID

from django.db import models

from modules.core.exceptions import AccessDenied


class Role(models.TextChoices):
    CUSTOMER = "customer", "Customer"
    VENDOR = "vendor", "Vendor"
    DELIVERY = "delivery", "Delivery partner"
    ADMIN = "admin", "Admin"
    SYSTEM = "system", "System"


@dataclass(frozen=True)
class Actor:
    """An authenticated party.

    ``entity_id`` is the id of the role's profile (``Customer``, ``Vendor``
    or ``DeliveryPartner``); admins and the system have none.
    """

    role: Role
    entity_id: Optional[UUID] = None
    user_id: Optional[int] = None

    @classmethod
    def system(cls) -> Actor:
        return cls(role=Role.SYSTEM)

    @property
    def is_privileged(self) -> bool:
        return self.role in (Role.ADMIN, Role.SYSTEM)

    def is_customer(self, customer_id: Any) -> bool:
        return self.role == Role.CUSTOMER and _same(self.entity_id, customer_id)

    def is_vendor(self, vendor_id: Any) -> bool:
        return self.role == Role.VENDOR and _same(self.entity_id, vendor_id)

    def is_delivery_partner(self, partner_id: Any) -> bool:
        return self.role == Role.DELIVERY and _same(self.entity_id, partner_id)


def resolve_actor(user: Any) -> Actor:
    """Build an ``Actor`` for an authenticated Django user.

    Raises:
        AccessDenied: the user has no marketplace profile.
    """
    if user is None or not getattr(user, "is_authenticated", False):
        raise AccessDenied("Authentication required.")
    if user.is_staff or user.is_superuser:
        return Actor(role=Role.ADMIN, user_id=user.pk)

    for attr, role in (
        ("vendor_profile", Role.VENDOR),
        ("delivery_profile", Role.DELIVERY),
        ("customer_profile", Role.CUSTOMER),
    ):
        profile = getattr(user, attr, None)
        if profile is not None:
            return Actor(role=role, entity_id=profile.pk, user_id=user.pk)

    raise AccessDenied("User has no customer, vendor or delivery profile.")


def _same(left: Any, right: Any) -> bool:
    return left is not None and right is not None and str(left) == str(right)
