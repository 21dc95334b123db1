"""Django ORM implementation of the DeliveryPartner repository."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import models, transaction
from django.db.models import F

from modules.delivery.models import DeliveryPartner, PartnerStatus
from modules.delivery.repositories.interfaces import IDeliveryPartnerRepository

logger = structlog.get_logger(__name__)


class DeliveryPartnerDjangoRepository(IDeliveryPartnerRepository):
    """Concrete DeliveryPartner repository backed by Django ORM."""

    def get_by_id(self, id: str) -> Optional[DeliveryPartner]:
        try:
            return DeliveryPartner.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(
        self, filters: Optional[Dict[str, Any]] = None
    ) -> "models.QuerySet[DeliveryPartner]":
        queryset = DeliveryPartner.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: DeliveryPartner) -> DeliveryPartner:
        entity.save()
        logger.info("delivery_partner.saved", partner_id=str(entity.id))
        return entity

    def find_available(self) -> "models.QuerySet[DeliveryPartner]":
        return DeliveryPartner.objects.filter(
            status=PartnerStatus.APPROVED,
            is_active=True,
            is_online=True,
        ).order_by(F("last_online_at").asc(nulls_last=True), "id")

    def update_fields(self, partner_id: UUID, **values: Any) -> int:
        return DeliveryPartner.objects.filter(id=partner_id).update(**values)

    def record_delivery(self, partner_id: UUID, earning: Decimal) -> None:
        DeliveryPartner.objects.filter(id=partner_id).update(
            total_deliveries=F("total_deliveries") + 1,
            total_earnings=F("total_earnings") + earning,
        )
        logger.info(
            "delivery_partner.stats_updated",
            partner_id=str(partner_id),
            earning=str(earning),
        )
