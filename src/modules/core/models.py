"""Base abstract model shared by every aggregate.

Orders are never physically deleted (terminal orders are the audit trail),
so there is no soft-delete layer: every table gets a UUIDv7 primary key,
which sorts by creation time, plus ``created_at`` / ``updated_at``.
"""

from __future__ import annotations

from decimal import Decimal

import uuid6
from django.db import models


class BaseModel(models.Model):
    """Abstract base with UUIDv7 PK and timestamp bookkeeping."""

    id = models.UUIDField(
        primary_key=True,
        default=uuid6.uuid7,
        editable=False,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        """Ensure ``updated_at`` is refreshed even when ``update_fields`` is passed."""
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = list(update_fields) + ["updated_at"]
        super().save(*args, **kwargs)


class RunningRatingMixin(models.Model):
    """Rating kept as a running sum and count; the average is derived on read.

    Both columns only ever move through a single ``UPDATE ... SET
    rating_total = rating_total + x, rating_count = rating_count + 1``
    (see ``modules.orders.ratings``), so concurrent submissions cannot
    overwrite each other.
    """

    rating_total = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    rating_count = models.PositiveIntegerField(default=0)

    class Meta:
        abstract = True

    @property
    def rating_average(self):
        if not self.rating_count:
            return Decimal("0.00")
        return (Decimal(self.rating_total) / self.rating_count).quantize(
            Decimal("0.01")
        )
