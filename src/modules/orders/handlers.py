"""Real-time fan-out and customer emails for order events.

Each handler maps one domain event onto notifier messages for the parties
that care.  ``EventNotifier.publish`` never raises, so a dead transport
costs a log line and nothing else; email delivery failures are handled the
same way.
"""

from __future__ import annotations

import structlog
from django.conf import settings
from django.core.mail import send_mail

from modules.orders.events import (
    DeliveryPartnerAssigned,
    OrderAutoCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderRated,
    OrderStatusChanged,
)
from shared.domain.events import IEventHandler
from shared.infrastructure.notifier import (
    customer_channel,
    delivery_channel,
    get_notifier,
    vendor_channel,
)

logger = structlog.get_logger(__name__)


class OrderPlacedHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        get_notifier().publish(
            vendor_channel(event.vendor_id),
            "new-order",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "customer": event.customer_name,
                "orderType": event.order_type,
                "items": list(event.items),
                "total": str(event.total),
                "address": event.delivery_address,
            },
        )


class OrderStatusChangedHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        payload = {
            "orderId": str(event.aggregate_id),
            "orderNumber": event.order_number,
            "status": event.new_status,
            "previousStatus": event.old_status,
            "message": event.message,
        }
        channels = [
            customer_channel(event.customer_id),
            vendor_channel(event.vendor_id),
        ]
        if event.delivery_partner_id:
            channels.append(delivery_channel(event.delivery_partner_id))

        delivered = get_notifier().publish_many(channels, "order-status-updated", payload)
        logger.info(
            "order.status_fanned_out",
            order_id=str(event.aggregate_id),
            status=event.new_status,
            channels=len(channels),
            delivered=delivered,
        )


class DeliveryPartnerAssignedHandler(IEventHandler[DeliveryPartnerAssigned]):
    def handle(self, event: DeliveryPartnerAssigned) -> None:
        get_notifier().publish(
            delivery_channel(event.partner_id),
            "new-delivery-request",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "vendorId": str(event.vendor_id),
                "total": str(event.total),
                "address": event.delivery_address,
            },
        )


class OrderCompletedHandler(IEventHandler[OrderCompleted]):
    def handle(self, event: OrderCompleted) -> None:
        get_notifier().publish(
            vendor_channel(event.vendor_id),
            "order-completed",
            {
                "orderId": str(event.aggregate_id),
                "orderNumber": event.order_number,
                "status": event.status,
                "total": str(event.total),
            },
        )


class OrderAutoCancelledHandler(IEventHandler[OrderAutoCancelled]):
    def handle(self, event: OrderAutoCancelled) -> None:
        payload = {
            "orderId": str(event.aggregate_id),
            "orderNumber": event.order_number,
            "status": "cancelled",
            "message": event.reason,
        }
        get_notifier().publish_many(
            [vendor_channel(event.vendor_id), customer_channel(event.customer_id)],
            "order-updated",
            payload,
        )


class OrderRatedHandler(IEventHandler[OrderRated]):
    def handle(self, event: OrderRated) -> None:
        notifier = get_notifier()
        payload = {
            "orderId": str(event.aggregate_id),
            "orderNumber": event.order_number,
            "overall": event.overall,
            "food": event.food,
            "delivery": event.delivery,
            "review": event.review,
        }
        notifier.publish(vendor_channel(event.vendor_id), "order-rated", payload)
        if event.delivery_partner_id and event.delivery is not None:
            notifier.publish(
                delivery_channel(event.delivery_partner_id), "order-rated", payload
            )


# ---------------------------------------------------------------------------
# Customer emails
# ---------------------------------------------------------------------------


def send_customer_email(to: str, subject: str, body: str, **log_context) -> bool:
    """Send one plain-text email; failures are logged and reported as ``False``."""
    if not to or not settings.ORDER_EMAILS_ENABLED:
        return False
    try:
        send_mail(subject, body, settings.DEFAULT_FROM_EMAIL, [to])
    except Exception as exc:
        logger.warning("order.email_failed", subject=subject, error=str(exc), **log_context)
        return False
    logger.info("order.email_sent", subject=subject, **log_context)
    return True


class OrderConfirmationEmailHandler(IEventHandler[OrderPlaced]):
    def handle(self, event: OrderPlaced) -> None:
        lines = [
            f"Hi {event.customer_name},",
            "",
            f"Your order #{event.order_number} has been placed.",
            "",
        ]
        lines += [
            f"  {item['quantity']} x {item['name']} @ {item['price']}"
            for item in event.items
        ]
        lines += ["", f"Total: {event.total}"]
        send_customer_email(
            event.customer_email,
            f"Order Confirmed - #{event.order_number}",
            "\n".join(lines),
            order_id=str(event.aggregate_id),
        )


class OrderStatusEmailHandler(IEventHandler[OrderStatusChanged]):
    def handle(self, event: OrderStatusChanged) -> None:
        send_customer_email(
            event.customer_email,
            f"Order Update - #{event.order_number}",
            f"{event.message}\n\nOrder #{event.order_number} is now {event.new_status}.",
            order_id=str(event.aggregate_id),
            status=event.new_status,
        )


order_placed_handler = OrderPlacedHandler()
order_status_changed_handler = OrderStatusChangedHandler()
delivery_partner_assigned_handler = DeliveryPartnerAssignedHandler()
order_completed_handler = OrderCompletedHandler()
order_auto_cancelled_handler = OrderAutoCancelledHandler()
order_rated_handler = OrderRatedHandler()
order_confirmation_email_handler = OrderConfirmationEmailHandler()
order_status_email_handler = OrderStatusEmailHandler()
