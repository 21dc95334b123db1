"""Payment gateway client.

``PaymentGateway`` is the boundary the payment service talks to;
``StripeGateway`` is the production implementation.  Gateway errors are
translated into ``UpstreamFailure`` here so nothing above this module
depends on the Stripe SDK.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Optional

import stripe
import structlog
from django.conf import settings
from django.utils.module_loading import import_string

from modules.core.exceptions import UpstreamFailure

logger = structlog.get_logger(__name__)


def to_minor_units(amount: Decimal) -> int:
    """Rupees to paise (or dollars to cents)."""
    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


@dataclass(frozen=True)
class GatewayIntent:
    id: str
    client_secret: str
    amount: int
    currency: str


@dataclass(frozen=True)
class GatewayRefund:
    id: str
    status: str


class PaymentGateway(ABC):
    provider: str = ""

    @abstractmethod
    def create_intent(
        self, amount: Decimal, currency: str, metadata: Dict[str, Any]
    ) -> GatewayIntent: ...

    @abstractmethod
    def refund(self, payment_id: str, amount: Decimal) -> GatewayRefund: ...


class StripeGateway(PaymentGateway):
    provider = "stripe"

    def __init__(self, api_key: Optional[str] = None) -> None:
        self._api_key = api_key if api_key is not None else settings.STRIPE_API_KEY

    def create_intent(
        self, amount: Decimal, currency: str, metadata: Dict[str, Any]
    ) -> GatewayIntent:
        try:
            intent = stripe.PaymentIntent.create(
                amount=to_minor_units(amount),
                currency=currency,
                metadata=metadata,
                automatic_payment_methods={"enabled": True},
                api_key=self._api_key,
            )
        except stripe.StripeError as exc:
            logger.error("payment.gateway_error", operation="create_intent", error=str(exc))
            raise UpstreamFailure("Payment gateway rejected the request.") from exc
        return GatewayIntent(
            id=intent.id,
            client_secret=intent.client_secret,
            amount=intent.amount,
            currency=intent.currency,
        )

    def refund(self, payment_id: str, amount: Decimal) -> GatewayRefund:
        try:
            refund = stripe.Refund.create(
                payment_intent=payment_id,
                amount=to_minor_units(amount),
                api_key=self._api_key,
            )
        except stripe.StripeError as exc:
            logger.error("payment.gateway_error", operation="refund", error=str(exc))
            raise UpstreamFailure("Payment gateway rejected the refund.") from exc
        return GatewayRefund(id=refund.id, status=refund.status)


def get_payment_gateway() -> PaymentGateway:
    return import_string(settings.PAYMENT_GATEWAY)()
