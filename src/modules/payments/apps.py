from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.payments"
    label = "payments"

    def ready(self) -> None:
        from modules.payments import handlers
        from modules.payments.events import (
            PaymentConfirmed,
            PaymentFailed,
            RefundProcessed,
            UpiPaymentDeclined,
            UpiPaymentPendingVerification,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(PaymentConfirmed, handlers.payment_confirmed_handler)
        event_bus.subscribe(PaymentFailed, handlers.payment_failed_handler)
        event_bus.subscribe(
            UpiPaymentPendingVerification, handlers.upi_pending_verification_handler
        )
        event_bus.subscribe(UpiPaymentDeclined, handlers.upi_payment_declined_handler)
        event_bus.subscribe(RefundProcessed, handlers.refund_processed_handler)
