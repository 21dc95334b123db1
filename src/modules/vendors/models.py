"""Vendor and MenuItem models.

Business rules implemented:
- Only approved, active vendors accept new orders (enforced at service layer).
- Running statistics (``total_orders``, ``completed_orders``,
  ``total_revenue``) only move through ``F()`` increments in the repository,
  never through a read-modify-write ``save()``.
- Menu item price must be greater than zero.  Order lines snapshot
  ``name`` and ``price``, so later menu edits never change past orders.
"""

from __future__ import annotations

from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from modules.core.models import BaseModel, RunningRatingMixin


class VendorStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    SUSPENDED = "suspended", "Suspended"


class Vendor(RunningRatingMixin, BaseModel):
    user = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="vendor_profile",
    )
    shop_name = models.CharField(max_length=255)
    status = models.CharField(
        max_length=20,
        choices=VendorStatus.choices,
        default=VendorStatus.PENDING,
    )
    is_active = models.BooleanField(default=True)
    latitude = models.DecimalField(max_digits=9, decimal_places=6, null=True, blank=True)
    longitude = models.DecimalField(
        max_digits=9, decimal_places=6, null=True, blank=True
    )

    total_orders = models.PositiveIntegerField(default=0)
    completed_orders = models.PositiveIntegerField(default=0)
    total_revenue = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00")
    )

    class Meta:
        db_table = "vendors"
        ordering = ["shop_name"]
        indexes = [
            models.Index(fields=["status", "is_active"], name="vendors_open_idx"),
        ]

    @property
    def accepts_orders(self) -> bool:
        return self.is_active and self.status == VendorStatus.APPROVED

    def __str__(self) -> str:
        return self.shop_name


class MenuItem(BaseModel):
    """Read-only catalog record used to snapshot order lines."""

    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        related_name="menu_items",
    )
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0.01"))],
    )
    is_available = models.BooleanField(default=True)

    class Meta:
        db_table = "menu_items"
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(price__gt=0),
                name="menu_items_price_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.name} ({self.price})"
