from __future__ import annotations

import re
from decimal import Decimal

import pytest

from modules.orders.models import Order, OrderItem

pytestmark = pytest.mark.unit


def test_order_number_format():
    assert re.fullmatch(r"SE\d{6}\d{4}", Order.generate_order_number())


def test_order_number_assigned_on_first_save(place_order):
    order = place_order()
    assert order.order_number.startswith("SE")
    assert len(order.order_number) == 12


def test_line_total_computed_on_save(place_order):
    order = place_order(quantity=3)
    line = OrderItem.objects.get(order=order)
    assert line.line_total == Decimal("300.00")


def test_pricing_property_reflects_columns(place_order):
    order = place_order()
    pricing = order.pricing
    assert pricing.total == order.total
    assert pricing.cgst + pricing.sgst == order.tax_total


def test_order_does_not_buffer_domain_events():
    # Events are collected by OrderService and published after commit.
    assert not hasattr(Order, "add_domain_event")
    assert not hasattr(Order, "pull_domain_events")
