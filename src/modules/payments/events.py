"""Domain events raised by payment reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from shared.domain.events import DomainEvent


@dataclass(frozen=True, kw_only=True)
class PaymentConfirmed(DomainEvent):
    order_number: str
    vendor_id: UUID
    customer_id: UUID
    amount: Decimal
    transaction_id: str = ""


@dataclass(frozen=True, kw_only=True)
class PaymentFailed(DomainEvent):
    order_number: str
    vendor_id: UUID
    customer_id: UUID
    amount: Decimal


@dataclass(frozen=True, kw_only=True)
class UpiPaymentPendingVerification(DomainEvent):
    order_number: str
    vendor_id: UUID
    amount: Decimal
    customer_name: str


@dataclass(frozen=True, kw_only=True)
class UpiPaymentDeclined(DomainEvent):
    """The customer reported that the UPI transfer did not go through."""

    order_number: str
    vendor_id: UUID
    amount: Decimal
    customer_name: str


@dataclass(frozen=True, kw_only=True)
class RefundProcessed(DomainEvent):
    order_number: str
    customer_id: UUID
    amount: Decimal
    refund_id: str = ""
