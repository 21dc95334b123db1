"""Django ORM implementation of the Vendor repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F

from modules.vendors.models import MenuItem, Vendor
from modules.vendors.repositories.interfaces import IVendorRepository

logger = structlog.get_logger(__name__)


class VendorDjangoRepository(IVendorRepository):
    """Concrete Vendor repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[Vendor]:
        """Retrieve a vendor by primary key, ``None`` for unknown or malformed IDs."""
        try:
            return Vendor.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Vendor]":
        queryset = Vendor.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Vendor) -> Vendor:
        entity.save()
        logger.info("vendor.saved", vendor_id=str(entity.id))
        return entity

    def get_menu_items(
        self, vendor_id: UUID, item_ids: Iterable[UUID]
    ) -> Dict[UUID, MenuItem]:
        items = MenuItem.objects.filter(vendor_id=vendor_id, id__in=list(item_ids))
        return {item.id: item for item in items}

    def increment_order_count(self, vendor_id: UUID) -> None:
        Vendor.objects.filter(id=vendor_id).update(total_orders=F("total_orders") + 1)

    def record_completed_order(self, vendor_id: UUID, revenue: Decimal) -> None:
        Vendor.objects.filter(id=vendor_id).update(
            completed_orders=F("completed_orders") + 1,
            total_revenue=F("total_revenue") + revenue,
        )
        logger.info(
            "vendor.stats_updated", vendor_id=str(vendor_id), revenue=str(revenue)
        )
