"""Unit tests for the pricing calculator."""

from __future__ import annotations

from decimal import Decimal

import pytest

from modules.orders.constants import OrderType
from modules.orders.pricing import PricedLine, calculate_pricing, to_money

pytestmark = pytest.mark.unit


def cart(*lines):
    return [PricedLine(unit_price=Decimal(price), quantity=qty) for price, qty in lines]


def test_delivery_order_pays_fee_and_tax():
    pricing = calculate_pricing(cart(("100.00", 2)), OrderType.DELIVERY)

    assert pricing.subtotal == Decimal("200.00")
    assert pricing.tax_total == Decimal("10.00")
    assert pricing.delivery_fee == Decimal("30.00")
    assert pricing.total == Decimal("240.00")


@pytest.mark.parametrize("order_type", [OrderType.PICKUP, OrderType.DINE_IN])
def test_collection_orders_have_no_delivery_fee(order_type):
    pricing = calculate_pricing(
        cart(("100.00", 2)), order_type, delivery_fee=Decimal("99.00")
    )

    assert pricing.delivery_fee == Decimal("0.00")
    assert pricing.total == Decimal("210.00")


def test_tax_split_absorbs_odd_cent_in_cgst():
    # 5% of 12.30 = 0.615 -> 0.62
    pricing = calculate_pricing(cart(("12.30", 1)), OrderType.PICKUP)

    assert pricing.tax_total == Decimal("0.62")
    assert pricing.sgst == Decimal("0.31")
    assert pricing.cgst == Decimal("0.31")
    assert pricing.igst == Decimal("0.00")

    pricing = calculate_pricing(cart(("10.10", 1)), OrderType.PICKUP)
    assert pricing.tax_total == Decimal("0.51")
    assert pricing.cgst == Decimal("0.26")
    assert pricing.sgst == Decimal("0.25")


def test_total_is_sum_of_components():
    pricing = calculate_pricing(
        cart(("49.99", 3), ("0.05", 7), ("120.00", 1)), OrderType.DELIVERY
    )

    assert pricing.total == pricing.subtotal + pricing.delivery_fee + pricing.tax_total
    assert pricing.cgst + pricing.sgst + pricing.igst == pricing.tax_total


def test_rates_are_configurable(settings):
    settings.ORDER_TAX_RATE = Decimal("0.18")
    settings.ORDER_DELIVERY_FEE = Decimal("45")

    pricing = calculate_pricing(cart(("100.00", 1)), OrderType.DELIVERY)

    assert pricing.tax_total == Decimal("18.00")
    assert pricing.delivery_fee == Decimal("45.00")
    assert pricing.total == Decimal("163.00")


def test_to_money_rounds_half_up():
    assert to_money(Decimal("0.125")) == Decimal("0.13")
    assert to_money("2") == Decimal("2.00")
