"""Django ORM implementation of the Order repository.

Concurrency control is optimistic: status changes go through
``conditional_update``, a single ``UPDATE ... WHERE id = %s AND status = %s
AND version = %s``.  Exactly one of two racing writers matches the row; the
other sees zero rows and reports ``StaleState`` upward.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError
from django.db import IntegrityError, models, transaction
from django.db.models import F, Q
from django.utils import timezone

from modules.core.actors import Actor
from modules.orders.constants import IN_TRANSIT_STATES, OrderStatus, OrderType
from modules.orders.exceptions import AlreadyRated
from modules.orders.models import Order, OrderItem, OrderRating, OrderStatusHistory
from modules.orders.repositories.interfaces import IOrderRepository

logger = structlog.get_logger(__name__)


class OrderDjangoRepository(IOrderRepository):
    """Concrete Order repository backed by Django ORM."""

    def _base_queryset(self) -> "models.QuerySet[Order]":
        return Order.objects.select_related(
            "customer", "vendor", "delivery_partner"
        ).prefetch_related("items", "status_history")

    # ------------------------------------------------------------------
    # Create (aggregate root + children)
    # ------------------------------------------------------------------

    @transaction.atomic
    def create(self, data: Dict[str, Any], items: Sequence[Dict[str, Any]]) -> Order:
        """Insert the order, then its lines in cart order."""
        order = Order(**data)
        order.save()

        for position, item_data in enumerate(items):
            OrderItem(order=order, position=position, **item_data).save()

        logger.info(
            "order.inserted",
            order_id=str(order.id),
            order_number=order.order_number,
            item_count=len(items),
        )
        return order

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get_by_id(self, id: str) -> Optional[Order]:
        """Returns ``None`` for non-existent or malformed IDs."""
        try:
            return self._base_queryset().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Order]":
        queryset = self._base_queryset()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        return self._base_queryset().filter(idempotency_key=key).first()

    def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Order]:
        return (
            self._base_queryset()
            .filter(payment_gateway_order_id=gateway_order_id)
            .first()
        )

    def find_stale(
        self, statuses: Sequence[str], created_before: datetime
    ) -> List[Order]:
        return list(
            Order.objects.filter(
                status__in=list(statuses), created_at__lt=created_before
            ).order_by("created_at")
        )

    def find_awaiting_assignment(self, limit: int = 100) -> List[Order]:
        return list(
            Order.objects.select_related("vendor")
            .filter(
                status=OrderStatus.READY,
                order_type=OrderType.DELIVERY,
                delivery_partner__isnull=True,
            )
            .order_by("ready_at", "created_at")[:limit]
        )

    def find_in_transit(self, partner_id: UUID) -> List[Order]:
        return list(
            Order.objects.filter(
                delivery_partner_id=partner_id, status__in=list(IN_TRANSIT_STATES)
            )
        )

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    @transaction.atomic
    def save(self, entity: Order) -> Order:
        """Persist non-lifecycle fields.  Status changes use ``conditional_update``."""
        entity.save()
        logger.info("order.saved", order_id=str(entity.id))
        return entity

    def conditional_update(
        self,
        order_id: UUID,
        expected_status: str,
        expected_version: int,
        patch: Dict[str, Any],
        condition: Optional[Q] = None,
    ) -> bool:
        queryset = Order.objects.filter(
            id=order_id, status=expected_status, version=expected_version
        )
        if condition is not None:
            queryset = queryset.filter(condition)
        rows = queryset.update(
            version=F("version") + 1, updated_at=timezone.now(), **patch
        )
        if rows != 1:
            logger.warning(
                "order.conditional_update_missed",
                order_id=str(order_id),
                expected_status=expected_status,
                expected_version=expected_version,
            )
        return rows == 1

    def update_payment(
        self,
        order_id: UUID,
        expected_payment_status: str,
        patch: Dict[str, Any],
        condition: Optional[Q] = None,
    ) -> bool:
        queryset = Order.objects.filter(
            id=order_id, payment_status=expected_payment_status
        )
        if condition is not None:
            queryset = queryset.filter(condition)
        rows = queryset.update(updated_at=timezone.now(), **patch)
        return rows == 1

    def assign_partner(
        self, order_id: UUID, partner_id: UUID, assigned_at: datetime
    ) -> bool:
        rows = Order.objects.filter(
            id=order_id,
            status=OrderStatus.READY,
            delivery_partner__isnull=True,
        ).update(
            delivery_partner_id=partner_id,
            assigned_at=assigned_at,
            version=F("version") + 1,
            updated_at=timezone.now(),
        )
        return rows == 1

    def add_history(
        self,
        order_id: UUID,
        status: str,
        actor: Actor,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        history = OrderStatusHistory.objects.create(
            order_id=order_id,
            old_status=old_status,
            status=status,
            actor_role=actor.role.value,
            actor_id=actor.entity_id,
            notes=notes,
        )
        logger.info(
            "order.history_added",
            order_id=str(order_id),
            old_status=old_status,
            new_status=status,
            actor_role=actor.role.value,
        )
        return history

    def add_rating(self, order_id: UUID, data: Dict[str, Any]) -> OrderRating:
        try:
            with transaction.atomic():
                return OrderRating.objects.create(order_id=order_id, **data)
        except IntegrityError as exc:
            raise AlreadyRated() from exc
