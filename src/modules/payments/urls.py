"""Payment URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.payments.views import (
    ConfirmUpiPaymentView,
    CreatePaymentIntentView,
    PaymentWebhookView,
    RefundView,
    VerifyUpiPaymentView,
)

urlpatterns = [
    path(
        "payments/create-intent/",
        CreatePaymentIntentView.as_view(),
        name="payment-create-intent",
    ),
    path("payments/webhook/", PaymentWebhookView.as_view(), name="payment-webhook"),
    path(
        "payments/confirm-upi/", ConfirmUpiPaymentView.as_view(), name="payment-confirm-upi"
    ),
    path(
        "payments/verify-upi/", VerifyUpiPaymentView.as_view(), name="payment-verify-upi"
    ),
    path("payments/refund/", RefundView.as_view(), name="payment-refund"),
]
