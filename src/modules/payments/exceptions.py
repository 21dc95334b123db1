"""Payment domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import DomainError, InvalidData


class InvalidPaymentTransition(DomainError):
    """The requested payment status change is not allowed."""

    code = "invalid_transition"
    default_message = "Invalid payment status transition."


class InvalidSignature(DomainError):
    code = "invalid_signature"
    default_message = "Invalid webhook signature."


class PaymentNotRequired(InvalidData):
    default_message = "This order is paid in cash and needs no online payment."
