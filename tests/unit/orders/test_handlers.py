"""Unit tests for the order event handlers (notifier fan-out)."""

from __future__ import annotations

from decimal import Decimal
from uuid import uuid4

import pytest

from modules.orders.events import (
    DeliveryPartnerAssigned,
    OrderAutoCancelled,
    OrderCompleted,
    OrderPlaced,
    OrderRated,
    OrderStatusChanged,
)
from modules.orders.handlers import (
    delivery_partner_assigned_handler,
    order_auto_cancelled_handler,
    order_completed_handler,
    order_placed_handler,
    order_rated_handler,
    order_status_changed_handler,
)

pytestmark = pytest.mark.unit


@pytest.fixture()
def ids():
    return {"order": uuid4(), "customer": uuid4(), "vendor": uuid4(), "partner": uuid4()}


def test_order_placed_goes_to_vendor(transport, ids):
    order_placed_handler.handle(
        OrderPlaced(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            customer_id=ids["customer"],
            customer_name="Asha",
            vendor_id=ids["vendor"],
            order_type="delivery",
            total=Decimal("240.00"),
        )
    )

    [(event, payload)] = transport.messages_for(f"vendor-{ids['vendor']}")
    assert event == "new-order"
    assert payload["orderNumber"] == "SE2610170001"
    assert payload["total"] == "240.00"


def test_status_change_reaches_all_parties(transport, ids):
    order_status_changed_handler.handle(
        OrderStatusChanged(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            customer_id=ids["customer"],
            vendor_id=ids["vendor"],
            delivery_partner_id=ids["partner"],
            old_status="ready",
            new_status="picked_up",
            order_type="delivery",
            message="on the way",
            actor_role="delivery",
        )
    )

    for room in (
        f"customer-{ids['customer']}",
        f"vendor-{ids['vendor']}",
        f"delivery-{ids['partner']}",
    ):
        [(event, payload)] = transport.messages_for(room)
        assert event == "order-status-updated"
        assert payload == {
            "orderId": str(ids["order"]),
            "orderNumber": "SE2610170001",
            "status": "picked_up",
            "previousStatus": "ready",
            "message": "on the way",
        }


def test_status_change_without_partner_skips_delivery_channel(transport, ids):
    order_status_changed_handler.handle(
        OrderStatusChanged(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            customer_id=ids["customer"],
            vendor_id=ids["vendor"],
            delivery_partner_id=None,
            old_status="placed",
            new_status="confirmed",
            order_type="pickup",
            message="confirmed",
            actor_role="vendor",
        )
    )
    assert len(transport.published) == 2


def test_assignment_goes_to_partner(transport, ids):
    delivery_partner_assigned_handler.handle(
        DeliveryPartnerAssigned(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            partner_id=ids["partner"],
            vendor_id=ids["vendor"],
            customer_id=ids["customer"],
            total=Decimal("240.00"),
        )
    )
    [(event, _)] = transport.messages_for(f"delivery-{ids['partner']}")
    assert event == "new-delivery-request"


def test_completion_goes_to_vendor(transport, ids):
    order_completed_handler.handle(
        OrderCompleted(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            vendor_id=ids["vendor"],
            status="delivered",
            total=Decimal("240.00"),
        )
    )
    [(event, payload)] = transport.messages_for(f"vendor-{ids['vendor']}")
    assert event == "order-completed"
    assert payload["status"] == "delivered"


def test_auto_cancel_goes_to_vendor_and_customer(transport, ids):
    order_auto_cancelled_handler.handle(
        OrderAutoCancelled(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            vendor_id=ids["vendor"],
            customer_id=ids["customer"],
            reason="Auto-declined: not accepted within 10 minutes",
        )
    )
    assert transport.messages_for(f"vendor-{ids['vendor']}")[0][0] == "order-updated"
    assert transport.messages_for(f"customer-{ids['customer']}")[0][0] == "order-updated"


def test_rating_reaches_partner_only_with_delivery_score(transport, ids):
    event = OrderRated(
        aggregate_id=ids["order"],
        order_number="SE2610170001",
        vendor_id=ids["vendor"],
        delivery_partner_id=ids["partner"],
        overall=4,
    )
    order_rated_handler.handle(event)
    assert transport.messages_for(f"delivery-{ids['partner']}") == []

    order_rated_handler.handle(
        OrderRated(
            aggregate_id=ids["order"],
            order_number="SE2610170001",
            vendor_id=ids["vendor"],
            delivery_partner_id=ids["partner"],
            overall=4,
            delivery=5,
        )
    )
    assert transport.messages_for(f"delivery-{ids['partner']}")[0][0] == "order-rated"
