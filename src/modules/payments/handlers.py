"""Real-time fan-out of payment events."""

from __future__ import annotations

from modules.payments.events import (
    PaymentConfirmed,
    PaymentFailed,
    RefundProcessed,
    UpiPaymentDeclined,
    UpiPaymentPendingVerification,
)
from shared.domain.events import IEventHandler
from shared.infrastructure.notifier import customer_channel, get_notifier, vendor_channel


class PaymentConfirmedHandler(IEventHandler[PaymentConfirmed]):
    def handle(self, event: PaymentConfirmed) -> None:
        get_notifier().publish_many(
            [vendor_channel(event.vendor_id), customer_channel(event.customer_id)],
            "payment-confirmed",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "amount": str(event.amount),
                "transactionId": event.transaction_id,
            },
        )


class PaymentFailedHandler(IEventHandler[PaymentFailed]):
    def handle(self, event: PaymentFailed) -> None:
        get_notifier().publish_many(
            [vendor_channel(event.vendor_id), customer_channel(event.customer_id)],
            "payment-failed",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "amount": str(event.amount),
            },
        )


class UpiPendingVerificationHandler(IEventHandler[UpiPaymentPendingVerification]):
    def handle(self, event: UpiPaymentPendingVerification) -> None:
        get_notifier().publish(
            vendor_channel(event.vendor_id),
            "upi-payment-pending-verification",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "amount": str(event.amount),
                "customerName": event.customer_name,
            },
        )


class UpiPaymentDeclinedHandler(IEventHandler[UpiPaymentDeclined]):
    def handle(self, event: UpiPaymentDeclined) -> None:
        get_notifier().publish(
            vendor_channel(event.vendor_id),
            "upi-payment-failed",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "amount": str(event.amount),
                "customerName": event.customer_name,
            },
        )


class RefundProcessedHandler(IEventHandler[RefundProcessed]):
    def handle(self, event: RefundProcessed) -> None:
        get_notifier().publish(
            customer_channel(event.customer_id),
            "refund-processed",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "amount": str(event.amount),
                "refundId": event.refund_id,
            },
        )


payment_confirmed_handler = PaymentConfirmedHandler()
payment_failed_handler = PaymentFailedHandler()
upi_pending_verification_handler = UpiPendingVerificationHandler()
upi_payment_declined_handler = UpiPaymentDeclinedHandler()
refund_processed_handler = RefundProcessedHandler()
