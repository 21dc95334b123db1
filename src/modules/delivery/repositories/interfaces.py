"""Delivery partner repository interface."""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models

    from modules.delivery.models import DeliveryPartner


class IDeliveryPartnerRepository(IRepository["DeliveryPartner"]):
    @abstractmethod
    def find_available(self) -> "models.QuerySet[DeliveryPartner]":
        """Approved, active, online partners; longest online first."""

    @abstractmethod
    def update_fields(self, partner_id: UUID, **values: Any) -> int:
        """Single-statement update of plain columns; returns rows matched."""

    @abstractmethod
    def record_delivery(self, partner_id: UUID, earning: Decimal) -> None:
        """``total_deliveries += 1`` and ``total_earnings += earning``."""
