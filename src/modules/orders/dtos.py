"""Order DTOs for the service layer.

Framework-agnostic, immutable (``frozen=True``) pydantic models: the
contracts between DRF serializers and ``OrderService``.

- ``PlaceOrderDTO`` / ``PlaceOrderItemDTO``: cart submitted by a customer.
- ``TransitionRequestDTO``: a status change request.
- ``RateOrderDTO``: scores attached to a delivered order.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from modules.orders.constants import OrderStatus, OrderType, PaymentMethod


class CustomizationDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    selected_option: str
    additional_price: Decimal = Decimal("0.00")


class PlaceOrderItemDTO(BaseModel):
    """A single cart line.  Price and name are resolved from the menu."""

    model_config = ConfigDict(frozen=True)

    menu_item_id: UUID
    quantity: int
    customizations: List[CustomizationDTO] = Field(default_factory=list)
    special_instructions: str = ""

    @field_validator("quantity")
    @classmethod
    def quantity_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Quantity must be at least 1.")
        return v


class PlaceOrderDTO(BaseModel):
    """Validates:

    - ``items`` contains at least one line.
    - Delivery orders carry a delivery address.
    """

    model_config = ConfigDict(frozen=True)

    vendor_id: UUID
    order_type: OrderType = OrderType.DELIVERY
    items: List[PlaceOrderItemDTO]
    payment_method: PaymentMethod = PaymentMethod.COD
    delivery_address: Dict[str, Any] = Field(default_factory=dict)
    special_instructions: Dict[str, str] = Field(default_factory=dict)
    idempotency_key: Optional[str] = None

    @field_validator("items")
    @classmethod
    def items_must_not_be_empty(
        cls, v: List[PlaceOrderItemDTO]
    ) -> List[PlaceOrderItemDTO]:
        if not v:
            raise ValueError("Order must have at least one item.")
        return v

    @model_validator(mode="after")
    def delivery_needs_address(self):
        if self.order_type == OrderType.DELIVERY and not self.delivery_address:
            raise ValueError("Delivery orders require a delivery address.")
        return self


class TransitionRequestDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    status: OrderStatus
    expected_status: Optional[OrderStatus] = None
    reason: str = ""
    notes: str = ""


class RateOrderDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: int = Field(ge=1, le=5)
    food: Optional[int] = Field(default=None, ge=1, le=5)
    delivery: Optional[int] = Field(default=None, ge=1, le=5)
    review: str = ""
