"""Payment reconciliation use cases.

Payment status has its own small state machine (``PAYMENT_TRANSITIONS``)
next to the order lifecycle.  Payment-only changes are conditional updates
keyed on the payment status the service read; changes that also move the
order (a failed payment cancels it, a refund refunds it) go through
``OrderService.transition`` with the payment fields as an extra patch, so
both land in the same conditional update.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings
from django.db.models import Q
from django.utils import timezone

from modules.core.actors import Actor
from modules.core.exceptions import AccessDenied, InvalidData, UpstreamFailure
from modules.orders.constants import (
    PAYMENT_TRANSITIONS,
    TERMINAL_STATES,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    RefundStatus,
)
from modules.orders.exceptions import (
    AlreadyTerminal,
    InvalidTransition,
    OrderNotFound,
    StaleState,
)
from modules.orders.state_machine import check_transition
from modules.payments.events import (
    PaymentConfirmed,
    PaymentFailed,
    RefundProcessed,
    UpiPaymentDeclined,
    UpiPaymentPendingVerification,
)
from modules.payments.exceptions import (
    InvalidPaymentTransition,
    InvalidSignature,
    PaymentNotRequired,
)
from modules.payments.gateway import GatewayIntent, get_payment_gateway
from modules.payments.signatures import verify_signature
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService
    from modules.payments.gateway import PaymentGateway
    from shared.domain.events import IEventBus

logger = structlog.get_logger(__name__)

CASH_METHODS = {PaymentMethod.COD, PaymentMethod.PICKUP_PAY}


def ensure_payment_transition(current: str, target: str) -> None:
    if target not in PAYMENT_TRANSITIONS.get(current, set()):
        raise InvalidPaymentTransition(
            f"Cannot move payment from {current} to {target}."
        )


class PaymentService:
    def __init__(
        self,
        order_repository: IOrderRepository,
        order_service: OrderService,
        gateway: Optional[PaymentGateway] = None,
        bus: Optional[IEventBus] = None,
        webhook_secret: Optional[str] = None,
    ) -> None:
        self._order_repo = order_repository
        self._orders = order_service
        self._gateway = gateway
        self._bus = bus or event_bus
        self._webhook_secret = (
            webhook_secret
            if webhook_secret is not None
            else settings.PAYMENT_WEBHOOK_SECRET
        )

    @property
    def gateway(self) -> PaymentGateway:
        if self._gateway is None:
            self._gateway = get_payment_gateway()
        return self._gateway

    # ------------------------------------------------------------------
    # Online payment
    # ------------------------------------------------------------------

    def create_payment_intent(
        self, order_id: UUID | str, actor: Actor
    ) -> Tuple[Order, GatewayIntent]:
        """Open a gateway payment for the order and mark it ``processing``.

        Raises:
            AccessDenied: not the ordering customer.
            AlreadyTerminal: the order is closed.
            PaymentNotRequired: cash orders.
            InvalidPaymentTransition: payment already under way or settled.
            UpstreamFailure: the gateway call failed.
        """
        order = self._load(order_id)
        if not actor.is_customer(order.customer_id):
            raise AccessDenied("Order belongs to another customer.")
        if order.status in TERMINAL_STATES:
            raise AlreadyTerminal(f"Order is already {order.status}.")
        if order.payment_method in CASH_METHODS:
            raise PaymentNotRequired()
        ensure_payment_transition(order.payment_status, PaymentStatus.PROCESSING)

        intent = self.gateway.create_intent(
            order.total,
            settings.PAYMENT_CURRENCY,
            {"order_id": str(order.id), "order_number": order.order_number},
        )
        self._update_payment(
            order,
            {
                "payment_status": PaymentStatus.PROCESSING,
                "payment_provider": self.gateway.provider,
                "payment_gateway_order_id": intent.id,
            },
        )
        logger.info(
            "payment.intent_created",
            order_id=str(order.id),
            gateway_id=intent.id,
            amount=intent.amount,
        )
        return self._load(order.id), intent

    def handle_webhook(self, raw_body: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """Apply a signed Stripe event.

        The ``Stripe-Signature`` header is checked against
        ``PAYMENT_WEBHOOK_SECRET`` before the body is even parsed.  The order
        is found through ``metadata.order_id`` on the event object, or through
        the PaymentIntent id the order was opened with.  Redelivered events
        for a payment already in the target state are acknowledged without
        changes.

        Raises:
            InvalidSignature: bad, stale or missing signature (nothing is mutated).
            InvalidData: unparseable body or missing order reference.
        """
        if not verify_signature(raw_body, signature, self._webhook_secret):
            logger.warning("payment.webhook_signature_rejected")
            raise InvalidSignature()

        try:
            event = json.loads(raw_body)
        except ValueError as exc:
            raise InvalidData("Webhook body is not valid JSON.") from exc
        if not isinstance(event, dict):
            raise InvalidData("Webhook body must be a JSON object.")

        event_type = str(event.get("type", ""))
        handler = {
            "payment_intent.succeeded": self._on_payment_captured,
            "payment_intent.payment_failed": self._on_payment_failed,
            "charge.refunded": self._on_refund_processed,
        }.get(event_type)
        if handler is None:
            logger.info("payment.webhook_ignored", event_type=event_type)
            return {"event": event_type, "handled": False}

        data = event.get("data")
        obj = data.get("object") if isinstance(data, dict) else None
        if not isinstance(obj, dict):
            raise InvalidData("Webhook event carries no object.")

        order = self._resolve_order(obj)
        if order is None:
            logger.warning(
                "payment.webhook_unknown_order",
                event_type=event_type,
                object_id=obj.get("id"),
            )
            return {"event": event_type, "handled": False}

        handled = handler(order, obj)
        logger.info(
            "payment.webhook_processed",
            event_type=event_type,
            order_id=str(order.id),
            handled=handled,
        )
        return {"event": event_type, "handled": handled}

    def _resolve_order(self, obj: Dict[str, Any]) -> Optional[Order]:
        metadata = obj.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise InvalidData("Webhook object metadata must be an object.")
        order_ref = metadata.get("order_id")
        if order_ref:
            return self._order_repo.get_by_id(str(order_ref))

        # Charges point back at the PaymentIntent the order was opened with.
        if obj.get("object") == "payment_intent":
            intent_id = obj.get("id")
        else:
            intent_id = obj.get("payment_intent")
        if isinstance(intent_id, str) and intent_id:
            return self._order_repo.get_by_gateway_order_id(intent_id)
        raise InvalidData("Webhook object carries no order reference.")

    def _on_payment_captured(self, order: Order, obj: Dict[str, Any]) -> bool:
        if order.payment_status == PaymentStatus.COMPLETED:
            return False
        ensure_payment_transition(order.payment_status, PaymentStatus.COMPLETED)
        transaction_id = str(obj.get("latest_charge") or obj.get("id", ""))
        self._update_payment(
            order,
            {
                "payment_status": PaymentStatus.COMPLETED,
                "payment_transaction_id": transaction_id,
                "paid_amount": order.total,
            },
        )
        self._bus.publish(
            PaymentConfirmed(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                customer_id=order.customer_id,
                amount=order.total,
                transaction_id=transaction_id,
            )
        )
        return True

    def _on_payment_failed(self, order: Order, obj: Dict[str, Any]) -> bool:
        if order.payment_status == PaymentStatus.FAILED:
            return False
        ensure_payment_transition(order.payment_status, PaymentStatus.FAILED)
        patch = {
            "payment_status": PaymentStatus.FAILED,
            "payment_transaction_id": str(obj.get("id", "")),
            "payment_updated_at": timezone.now(),
        }
        cancelled = False
        if order.status not in TERMINAL_STATES:
            try:
                self._orders.transition(
                    order.id,
                    OrderStatus.CANCELLED,
                    Actor.system(),
                    expected_status=order.status,
                    reason="Payment failed",
                    extra_patch=patch,
                )
                cancelled = True
            except InvalidTransition:
                # Already on its way to the customer.
                logger.warning(
                    "payment.failed_order_not_cancellable",
                    order_id=str(order.id),
                    status=order.status,
                )
        if not cancelled:
            self._update_payment(order, patch)

        self._bus.publish(
            PaymentFailed(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                customer_id=order.customer_id,
                amount=order.total,
            )
        )
        return True

    def _on_refund_processed(self, order: Order, obj: Dict[str, Any]) -> bool:
        if order.payment_status == PaymentStatus.REFUNDED:
            return False
        if not obj.get("refunded"):
            # Partial refunds are not issued from here.
            logger.info("payment.partial_refund_ignored", order_id=str(order.id))
            return False
        ensure_payment_transition(order.payment_status, PaymentStatus.REFUNDED)
        self._apply_refund(
            order, Actor.system(), "Refund processed by gateway", str(obj.get("id", ""))
        )
        return True

    # ------------------------------------------------------------------
    # UPI (manual verification)
    # ------------------------------------------------------------------

    def confirm_upi_payment(
        self, order_id: UUID | str, actor: Actor, confirmed: bool
    ) -> Order:
        """Customer reports the outcome of a UPI transfer.

        ``confirmed`` parks the payment in ``pending_verification`` for the
        vendor; a declined transfer fails the payment and cancels the order.
        """
        order = self._load(order_id)
        if not actor.is_customer(order.customer_id):
            raise AccessDenied("Order belongs to another customer.")
        if order.payment_method != PaymentMethod.UPI:
            raise InvalidData("Order is not paid by UPI.")
        if order.status in TERMINAL_STATES:
            raise AlreadyTerminal(f"Order is already {order.status}.")

        if confirmed:
            ensure_payment_transition(
                order.payment_status, PaymentStatus.PENDING_VERIFICATION
            )
            self._update_payment(
                order,
                {
                    "payment_status": PaymentStatus.PENDING_VERIFICATION,
                    "payment_provider": "upi",
                },
            )
            event = UpiPaymentPendingVerification(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                amount=order.total,
                customer_name=order.customer.name,
            )
        else:
            ensure_payment_transition(order.payment_status, PaymentStatus.FAILED)
            self._orders.transition(
                order.id,
                OrderStatus.CANCELLED,
                actor,
                expected_status=order.status,
                reason="UPI payment not completed",
                extra_patch={
                    "payment_status": PaymentStatus.FAILED,
                    "payment_provider": "upi",
                    "payment_updated_at": timezone.now(),
                },
            )
            event = UpiPaymentDeclined(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                amount=order.total,
                customer_name=order.customer.name,
            )

        logger.info(
            "payment.upi_reported", order_id=str(order.id), confirmed=confirmed
        )
        self._bus.publish(event)
        return self._load(order.id)

    def verify_upi_payment(self, order_id: UUID | str, actor: Actor) -> Order:
        """Vendor confirms the UPI transfer arrived."""
        order = self._load(order_id)
        if not (actor.is_privileged or actor.is_vendor(order.vendor_id)):
            raise AccessDenied("Order belongs to another vendor.")
        if order.payment_status != PaymentStatus.PENDING_VERIFICATION:
            raise InvalidPaymentTransition("Payment is not awaiting verification.")

        self._update_payment(
            order,
            {"payment_status": PaymentStatus.COMPLETED, "paid_amount": order.total},
        )
        logger.info("payment.upi_verified", order_id=str(order.id))
        self._bus.publish(
            PaymentConfirmed(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                customer_id=order.customer_id,
                amount=order.total,
            )
        )
        return self._load(order.id)

    # ------------------------------------------------------------------
    # Refunds
    # ------------------------------------------------------------------

    def refund(self, order_id: UUID | str, actor: Actor, reason: str = "") -> Order:
        """Refund a completed payment.

        An open order moves to ``refunded``; a cancelled one keeps its
        status and only records the refund.

        Raises:
            AccessDenied: neither the order's vendor nor an admin.
            AlreadyTerminal: the order is delivered or already refunded.
            InvalidPaymentTransition: the payment is not completed.
            StaleState: the order moved on; a gateway refund already issued
                stays ``refund_status=pending`` for the webhook to settle.
            UpstreamFailure: the gateway refused the refund (``refund_status``
                becomes ``failed``; the payment stays completed).
        """
        order = self._load(order_id)
        if not (actor.is_privileged or actor.is_vendor(order.vendor_id)):
            raise AccessDenied("Order belongs to another vendor.")
        if order.status in (OrderStatus.DELIVERED, OrderStatus.REFUNDED):
            raise AlreadyTerminal(f"Order is already {order.status}.")
        if order.payment_status != PaymentStatus.COMPLETED:
            raise InvalidPaymentTransition("Only completed payments can be refunded.")
        if order.status != OrderStatus.CANCELLED:
            check_transition(order, OrderStatus.REFUNDED, actor)

        refund_id = ""
        if order.payment_gateway_order_id and order.payment_provider == self.gateway.provider:
            refund_id = self._gateway_refund(order)

        try:
            self._apply_refund(order, actor, reason or "Refunded", refund_id)
        except StaleState:
            if refund_id:
                # Money has left; ``refund_status`` stays pending until the
                # gateway's charge.refunded event is reconciled.
                logger.error(
                    "payment.refund_unrecorded",
                    order_id=str(order.id),
                    refund_id=refund_id,
                    gateway_order_id=order.payment_gateway_order_id,
                )
            raise
        return self._load(order.id)

    def _gateway_refund(self, order: Order) -> str:
        """Mark the refund pending, then ask the gateway for the money back."""
        self._update_payment(
            order,
            {"refund_status": RefundStatus.PENDING, "refund_amount": order.total},
            condition=~Q(refund_status=RefundStatus.PENDING),
        )
        try:
            refund = self.gateway.refund(order.payment_gateway_order_id, order.total)
        except UpstreamFailure:
            self._order_repo.update_payment(
                order.id, order.payment_status, {"refund_status": RefundStatus.FAILED}
            )
            raise
        logger.info(
            "payment.gateway_refunded", order_id=str(order.id), refund_id=refund.id
        )
        return refund.id

    def _apply_refund(self, order: Order, actor: Actor, reason: str, refund_id: str) -> None:
        now = timezone.now()
        patch: Dict[str, Any] = {
            "payment_status": PaymentStatus.REFUNDED,
            "refund_amount": order.total,
            "refund_status": RefundStatus.PROCESSED,
            "payment_updated_at": now,
        }
        if order.status in TERMINAL_STATES:
            patch["refunded_at"] = now
            self._update_payment(order, patch)
        else:
            self._orders.transition(
                order.id,
                OrderStatus.REFUNDED,
                actor,
                expected_status=order.status,
                reason=reason,
                extra_patch=patch,
            )

        logger.info("payment.refunded", order_id=str(order.id), refund_id=refund_id)
        self._bus.publish(
            RefundProcessed(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                amount=order.total,
                refund_id=refund_id,
            )
        )

    # ------------------------------------------------------------------

    def _update_payment(
        self, order: Order, patch: Dict[str, Any], condition: Optional[Q] = None
    ) -> None:
        patch.setdefault("payment_updated_at", timezone.now())
        if not self._order_repo.update_payment(
            order.id, order.payment_status, patch, condition
        ):
            logger.warning(
                "payment.stale_state",
                order_id=str(order.id),
                expected_payment_status=order.payment_status,
            )
            raise StaleState("Payment was modified concurrently. Reload and retry.")

    def _load(self, order_id: UUID | str) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order


def build_payment_service() -> PaymentService:
    from modules.orders.services import build_order_service

    order_service = build_order_service()
    return PaymentService(
        order_repository=order_service.order_repository,
        order_service=order_service,
    )
