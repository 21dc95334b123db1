"""Order repository interface.

Extends ``IRepository[Order]`` with what the order lifecycle needs:
atomic placement with items, the conditional update that makes status
changes linearizable, the append-only history, and the scans driven by the
background tasks.

The service layer depends exclusively on this contract.
"""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from django.db import models
    from django.db.models import Q

    from modules.core.actors import Actor
    from modules.orders.models import Order, OrderRating, OrderStatusHistory


class IOrderRepository(IRepository["Order"]):
    """Repository contract for the Order aggregate root.

    The aggregate includes ``OrderItem`` children, ``OrderStatusHistory``
    records and the optional ``OrderRating``.
    """

    @abstractmethod
    def create(self, data: Dict[str, Any], items: Sequence[Dict[str, Any]]) -> Order:
        """Insert an order and its lines atomically."""

    @abstractmethod
    def get_by_id(self, id: str) -> Optional[Order]:
        """Retrieve an order with parties, items and history eager-loaded."""

    @abstractmethod
    def list(self, filters: Optional[Dict[str, Any]] = None) -> "models.QuerySet[Order]":
        """List orders with optional filters."""

    @abstractmethod
    def conditional_update(
        self,
        order_id: UUID,
        expected_status: str,
        expected_version: int,
        patch: Dict[str, Any],
        condition: Optional[Q] = None,
    ) -> bool:
        """Apply *patch* only if status and version still match.

        Bumps ``version``.  Returns ``False`` when no row matched, i.e. the
        order moved on since it was read.
        """

    @abstractmethod
    def update_payment(
        self,
        order_id: UUID,
        expected_payment_status: str,
        patch: Dict[str, Any],
        condition: Optional[Q] = None,
    ) -> bool:
        """Apply a payment patch only if ``payment_status`` still matches."""

    @abstractmethod
    def assign_partner(
        self, order_id: UUID, partner_id: UUID, assigned_at: datetime
    ) -> bool:
        """Set the partner on a ready, unassigned order; ``False`` if lost."""

    @abstractmethod
    def add_history(
        self,
        order_id: UUID,
        status: str,
        actor: Actor,
        notes: str = "",
        old_status: Optional[str] = None,
    ) -> OrderStatusHistory:
        """Append a status change to the order's audit trail."""

    @abstractmethod
    def add_rating(self, order_id: UUID, data: Dict[str, Any]) -> OrderRating:
        """Attach the order's single rating; raises ``AlreadyRated``."""

    @abstractmethod
    def get_by_idempotency_key(self, key: str) -> Optional[Order]:
        """Retrieve an order by its client-supplied idempotency key."""

    @abstractmethod
    def get_by_gateway_order_id(self, gateway_order_id: str) -> Optional[Order]:
        """Retrieve the order a gateway payment was opened for."""

    @abstractmethod
    def find_stale(self, statuses: Sequence[str], created_before: datetime) -> List[Order]:
        """Orders in *statuses* created before *created_before*, oldest first."""

    @abstractmethod
    def find_awaiting_assignment(self, limit: int = 100) -> List[Order]:
        """Ready delivery orders without a partner, oldest first."""

    @abstractmethod
    def find_in_transit(self, partner_id: UUID) -> List[Order]:
        """Orders the partner has picked up and not yet delivered."""
