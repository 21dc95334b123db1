"""Payment API views.

Authenticated endpoints resolve the caller's marketplace role and delegate
to ``PaymentService``; the webhook is unauthenticated and trusts only the
body signature.
"""

from __future__ import annotations

from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.actors import resolve_actor
from modules.orders.serializers import OrderSerializer
from modules.payments.serializers import (
    ConfirmUpiSerializer,
    OrderReferenceSerializer,
    PaymentIntentSerializer,
    RefundSerializer,
)
from modules.payments.services import build_payment_service

SIGNATURE_HEADER = "Stripe-Signature"


class PaymentView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_payment_service()

    def order_response(self, message: str, order, **extra) -> Response:
        body = {"success": True, "message": message, "order": OrderSerializer(order).data}
        body.update(extra)
        return Response(body)


class CreatePaymentIntentView(PaymentView):
    """POST /api/v1/payments/create-intent/"""

    def post(self, request: Request) -> Response:
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order, intent = self._service.create_payment_intent(
            serializer.validated_data["order_id"], resolve_actor(request.user)
        )
        return self.order_response(
            "Payment initiated",
            order,
            payment=PaymentIntentSerializer(intent).data,
        )


class PaymentWebhookView(PaymentView):
    """POST /api/v1/payments/webhook/"""

    authentication_classes: list = []
    permission_classes = [AllowAny]
    throttle_classes: list = []

    def post(self, request: Request) -> Response:
        result = self._service.handle_webhook(
            request.body, request.headers.get(SIGNATURE_HEADER)
        )
        return Response({"status": "ok", **result})


class ConfirmUpiPaymentView(PaymentView):
    """POST /api/v1/payments/confirm-upi/"""

    def post(self, request: Request) -> Response:
        serializer = ConfirmUpiSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = self._service.confirm_upi_payment(
            data["order_id"], resolve_actor(request.user), data["confirmed"]
        )
        message = (
            "Payment submitted for vendor verification"
            if data["confirmed"]
            else "Payment failed, order cancelled"
        )
        return self.order_response(message, order)


class VerifyUpiPaymentView(PaymentView):
    """POST /api/v1/payments/verify-upi/"""

    def post(self, request: Request) -> Response:
        serializer = OrderReferenceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.verify_upi_payment(
            serializer.validated_data["order_id"], resolve_actor(request.user)
        )
        return self.order_response("Payment verified", order)


class RefundView(PaymentView):
    """POST /api/v1/payments/refund/"""

    def post(self, request: Request) -> Response:
        serializer = RefundSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = self._service.refund(
            data["order_id"], resolve_actor(request.user), data["reason"]
        )
        return self.order_response("Refund processed successfully", order)
