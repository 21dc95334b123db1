"""Order, OrderItem, OrderStatusHistory and OrderRating models.

Business rules implemented:
- Order number is ``SE`` + ``YYMMDD`` + 4 random digits, generated on first
  save with bounded retry on collision; immutable afterwards.
- ``status`` and ``version`` only change through the repository's
  conditional update, never through ``save()``; ``version`` is the
  optimistic concurrency token.
- Pricing columns are written once at placement; ``total`` always equals
  ``subtotal + delivery_fee + tax_total``.
- Order lines snapshot menu item name and price.
- Status history is append-only; its newest row matches ``Order.status``.
- At most one rating per order (one-to-one), scores between 1 and 5.
"""

from __future__ import annotations

import secrets
from decimal import Decimal
from typing import Any

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.orders.constants import (
    ORDER_NUMBER_MAX_RETRIES,
    ORDER_NUMBER_PREFIX,
    TERMINAL_STATES,
    CancelledBy,
    OrderStatus,
    OrderType,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from modules.orders.pricing import PricingBreakdown

MONEY = {"max_digits": 12, "decimal_places": 2, "default": Decimal("0.00")}


class Order(BaseModel):
    """Order aggregate root.

    ``order_number`` is the human-readable identifier shown to people;
    the UUIDv7 ``id`` is used for every internal reference and API look-up.
    """

    order_number = models.CharField(max_length=20, unique=True, editable=False)
    customer = models.ForeignKey(
        "customers.Customer",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    vendor = models.ForeignKey(
        "vendors.Vendor",
        on_delete=models.PROTECT,
        related_name="orders",
    )
    delivery_partner = models.ForeignKey(
        "delivery.DeliveryPartner",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    assigned_at = models.DateTimeField(null=True, blank=True)

    order_type = models.CharField(
        max_length=20, choices=OrderType.choices, default=OrderType.DELIVERY
    )
    status = models.CharField(
        max_length=20, choices=OrderStatus.choices, default=OrderStatus.PLACED
    )
    version = models.PositiveIntegerField(default=1)

    # Pricing
    subtotal = models.DecimalField(**MONEY)
    delivery_fee = models.DecimalField(**MONEY)
    tax_cgst = models.DecimalField(**MONEY)
    tax_sgst = models.DecimalField(**MONEY)
    tax_igst = models.DecimalField(**MONEY)
    tax_total = models.DecimalField(**MONEY)
    total = models.DecimalField(**MONEY)

    delivery_address = models.JSONField(default=dict, blank=True)
    special_instructions = models.JSONField(default=dict, blank=True)

    # Payment
    payment_method = models.CharField(
        max_length=20, choices=PaymentMethod.choices, default=PaymentMethod.COD
    )
    payment_provider = models.CharField(max_length=50, blank=True, default="")
    payment_gateway_order_id = models.CharField(max_length=255, blank=True, default="")
    payment_transaction_id = models.CharField(max_length=255, blank=True, default="")
    payment_status = models.CharField(
        max_length=30, choices=PaymentStatus.choices, default=PaymentStatus.PENDING
    )
    paid_amount = models.DecimalField(**MONEY)
    payment_updated_at = models.DateTimeField(null=True, blank=True)

    # Timing
    placed_at = models.DateTimeField(default=timezone.now)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    accepted_at = models.DateTimeField(null=True, blank=True)
    preparing_at = models.DateTimeField(null=True, blank=True)
    ready_at = models.DateTimeField(null=True, blank=True)
    picked_up_at = models.DateTimeField(null=True, blank=True)
    out_for_delivery_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(null=True, blank=True)
    estimated_delivery_at = models.DateTimeField(null=True, blank=True)

    # Cancellation
    cancellation_reason = models.TextField(blank=True, default="")
    cancelled_by = models.CharField(
        max_length=20, choices=CancelledBy.choices, blank=True, default=""
    )
    refund_amount = models.DecimalField(**MONEY)
    refund_status = models.CharField(
        max_length=20, choices=RefundStatus.choices, blank=True, default=""
    )

    idempotency_key = models.CharField(
        max_length=255, unique=True, null=True, blank=True
    )

    class Meta:
        db_table = "orders"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status", "created_at"], name="orders_status_created_idx"),
            models.Index(fields=["vendor", "-created_at"], name="orders_vendor_idx"),
            models.Index(fields=["customer", "-created_at"], name="orders_customer_idx"),
            models.Index(
                fields=["delivery_partner", "status"], name="orders_partner_idx"
            ),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATES

    @property
    def is_delivery(self) -> bool:
        return self.order_type == OrderType.DELIVERY

    @property
    def pricing(self) -> PricingBreakdown:
        return PricingBreakdown(
            subtotal=self.subtotal,
            delivery_fee=self.delivery_fee,
            cgst=self.tax_cgst,
            sgst=self.tax_sgst,
            igst=self.tax_igst,
            tax_total=self.tax_total,
            total=self.total,
        )

    @staticmethod
    def generate_order_number() -> str:
        """``SE`` + ``YYMMDD`` + 4 random digits, e.g. ``SE2610170042``."""
        now = timezone.localtime()
        return f"{ORDER_NUMBER_PREFIX}{now:%y%m%d}{secrets.randbelow(10000):04d}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self.order_number:
            for _ in range(ORDER_NUMBER_MAX_RETRIES):
                candidate = self.generate_order_number()
                if not Order.objects.filter(order_number=candidate).exists():
                    self.order_number = candidate
                    break
            else:
                raise RuntimeError(
                    f"Failed to generate unique order_number after "
                    f"{ORDER_NUMBER_MAX_RETRIES} attempts"
                )
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.order_number} ({self.status})"


class OrderItem(BaseModel):
    """Order line with a snapshot of the menu item at placement time.

    ``menu_item`` is kept for reporting only; ``name`` and ``unit_price``
    are what the order is priced on.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="items",
    )
    position = models.PositiveSmallIntegerField(default=0)
    menu_item = models.ForeignKey(
        "vendors.MenuItem",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    name = models.CharField(max_length=255)
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    customizations = models.JSONField(default=list, blank=True)
    special_instructions = models.TextField(blank=True, default="")
    line_total = models.DecimalField(max_digits=12, decimal_places=2, editable=False)

    class Meta:
        db_table = "order_items"
        ordering = ["position"]
        constraints = [
            models.CheckConstraint(
                check=models.Q(quantity__gte=1),
                name="order_items_quantity_positive",
            ),
        ]

    def save(self, *args: Any, **kwargs: Any) -> None:
        self.line_total = self.quantity * self.unit_price
        super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.name} x{self.quantity}"


class OrderStatusHistory(BaseModel):
    """Append-only audit trail of status changes.

    ``actor_id`` is empty for system and admin changes.
    """

    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="status_history",
    )
    old_status = models.CharField(  # noqa: DJ01
        max_length=20, choices=OrderStatus.choices, null=True, blank=True
    )
    status = models.CharField(max_length=20, choices=OrderStatus.choices)
    actor_role = models.CharField(max_length=20)
    actor_id = models.UUIDField(null=True, blank=True)
    notes = models.TextField(blank=True, default="")

    class Meta:
        db_table = "order_status_history"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["order", "created_at"], name="osh_order_created_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.order_id}: {self.old_status} -> {self.status}"


def _score_field(**kwargs: Any) -> models.PositiveSmallIntegerField:
    return models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(5)], **kwargs
    )


class OrderRating(BaseModel):
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="rating",
    )
    food = _score_field(null=True, blank=True)
    delivery = _score_field(null=True, blank=True)
    overall = _score_field()
    review = models.TextField(blank=True, default="")
    rated_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "order_ratings"
        constraints = [
            models.CheckConstraint(
                check=models.Q(overall__gte=1, overall__lte=5),
                name="order_ratings_overall_range",
            ),
            models.CheckConstraint(
                check=models.Q(food__isnull=True)
                | models.Q(food__gte=1, food__lte=5),
                name="order_ratings_food_range",
            ),
            models.CheckConstraint(
                check=models.Q(delivery__isnull=True)
                | models.Q(delivery__gte=1, delivery__lte=5),
                name="order_ratings_delivery_range",
            ),
        ]
