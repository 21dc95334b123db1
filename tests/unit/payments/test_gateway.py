"""Unit tests for the Stripe gateway client (SDK mocked)."""

from __future__ import annotations

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import patch

import pytest
import stripe

from modules.core.exceptions import UpstreamFailure
from modules.payments.gateway import StripeGateway, to_minor_units

pytestmark = pytest.mark.unit


def test_minor_units():
    assert to_minor_units(Decimal("240.00")) == 24000
    assert to_minor_units(Decimal("10.505")) == 1051


@patch("modules.payments.gateway.stripe.PaymentIntent.create")
def test_create_intent_sends_minor_units_and_metadata(create):
    create.return_value = SimpleNamespace(
        id="pi_123", client_secret="pi_123_secret", amount=24000, currency="inr"
    )

    intent = StripeGateway(api_key="sk_test").create_intent(
        Decimal("240.00"), "inr", {"order_id": "abc"}
    )

    assert intent.id == "pi_123"
    kwargs = create.call_args.kwargs
    assert kwargs["amount"] == 24000
    assert kwargs["metadata"] == {"order_id": "abc"}
    assert kwargs["api_key"] == "sk_test"


@patch("modules.payments.gateway.stripe.PaymentIntent.create")
def test_gateway_error_becomes_upstream_failure(create):
    create.side_effect = stripe.StripeError("card network down")

    with pytest.raises(UpstreamFailure):
        StripeGateway(api_key="sk_test").create_intent(Decimal("1.00"), "inr", {})


@patch("modules.payments.gateway.stripe.Refund.create")
def test_refund(create):
    create.return_value = SimpleNamespace(id="re_1", status="succeeded")

    refund = StripeGateway(api_key="sk_test").refund("pi_123", Decimal("240.00"))

    assert refund.id == "re_1"
    create.assert_called_once_with(
        payment_intent="pi_123", amount=24000, api_key="sk_test"
    )
