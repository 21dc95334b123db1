"""Vendor repository interface.

Besides look-ups, the contract exposes the atomic counter updates the order
lifecycle needs: one ``UPDATE`` per call, safe under concurrent completions
for the same vendor.
"""

from __future__ import annotations

from abc import abstractmethod
from decimal import Decimal
from typing import TYPE_CHECKING, Dict, Iterable
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.vendors.models import MenuItem, Vendor


class IVendorRepository(IRepository["Vendor"]):
    @abstractmethod
    def get_menu_items(
        self, vendor_id: UUID, item_ids: Iterable[UUID]
    ) -> Dict[UUID, MenuItem]:
        """Menu items of *vendor_id* among *item_ids*, keyed by id."""

    @abstractmethod
    def increment_order_count(self, vendor_id: UUID) -> None:
        """``total_orders += 1``."""

    @abstractmethod
    def record_completed_order(self, vendor_id: UUID, revenue: Decimal) -> None:
        """``completed_orders += 1`` and ``total_revenue += revenue``."""
