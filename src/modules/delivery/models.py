"""Delivery partner model.

A partner is eligible for automatic assignment only while approved, active
and online.  ``total_deliveries`` / ``total_earnings`` and the running
rating are updated with ``F()`` increments only.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.db import models

from modules.core.models import BaseModel, RunningRatingMixin


class PartnerStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"
    SUSPENDED = "suspended", "Suspended"


class DeliveryPartner(RunningRatingMixin, BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="delivery_profile",
    )
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=20, blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=PartnerStatus.choices,
        default=PartnerStatus.PENDING,
    )
    is_active = models.BooleanField(default=True)

    is_online = models.BooleanField(default=False)
    last_online_at = models.DateTimeField(null=True, blank=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )
    location_updated_at = models.DateTimeField(null=True, blank=True)

    total_deliveries = models.PositiveIntegerField(default=0)
    total_earnings = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        db_table = "delivery_partners"
        ordering = ["name"]
        indexes = [
            models.Index(
                fields=["status", "is_active", "is_online"],
                name="partners_available_idx",
            ),
        ]

    @property
    def is_approved(self) -> bool:
        return self.is_active and self.status == PartnerStatus.APPROVED

    @property
    def is_available(self) -> bool:
        return self.is_approved and self.is_online

    def __str__(self) -> str:
        return self.name
