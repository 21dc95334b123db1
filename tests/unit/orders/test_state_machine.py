"""Unit tests for the order state machine rules (no database)."""

from __future__ import annotations

from uuid import uuid4

import pytest

from modules.core.actors import Actor, Role
from modules.core.exceptions import AccessDenied
from modules.orders.constants import (
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    OrderStatus,
    OrderType,
)
from modules.orders.exceptions import AlreadyTerminal, InvalidTransition, StaleState
from modules.orders.models import Order
from modules.orders.state_machine import (
    check_transition,
    is_edge_allowed,
    status_message,
)

pytestmark = pytest.mark.unit


def make_order(status=OrderStatus.PLACED, order_type=OrderType.DELIVERY, partner=None):
    return Order(
        customer_id=uuid4(),
        vendor_id=uuid4(),
        delivery_partner_id=partner,
        status=status,
        order_type=order_type,
    )


def vendor_of(order):
    return Actor(role=Role.VENDOR, entity_id=order.vendor_id)


def customer_of(order):
    return Actor(role=Role.CUSTOMER, entity_id=order.customer_id)


class TestEdges:
    def test_terminal_states_have_no_outgoing_edges(self):
        for status in TERMINAL_STATES:
            assert VALID_TRANSITIONS[status] == set()

    def test_kitchen_states_may_be_skipped(self):
        assert is_edge_allowed(OrderStatus.PLACED, OrderStatus.READY, OrderType.DELIVERY)

    def test_handoff_states_may_not_be_skipped(self):
        assert not is_edge_allowed(
            OrderStatus.PLACED, OrderStatus.DELIVERED, OrderType.DELIVERY
        )
        assert not is_edge_allowed(
            OrderStatus.PREPARING, OrderStatus.PICKED_UP, OrderType.DELIVERY
        )

    def test_out_for_delivery_is_delivery_only(self):
        assert is_edge_allowed(
            OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY, OrderType.DELIVERY
        )
        assert not is_edge_allowed(
            OrderStatus.PICKED_UP, OrderStatus.OUT_FOR_DELIVERY, OrderType.PICKUP
        )

    def test_ready_for_pickup_is_collection_only(self):
        assert is_edge_allowed(
            OrderStatus.READY, OrderStatus.READY_FOR_PICKUP, OrderType.DINE_IN
        )
        assert not is_edge_allowed(
            OrderStatus.READY, OrderStatus.READY_FOR_PICKUP, OrderType.DELIVERY
        )


class TestCheckTransition:
    def test_vendor_may_confirm_own_order(self):
        order = make_order()
        check_transition(order, OrderStatus.CONFIRMED, vendor_of(order))

    def test_other_vendor_is_denied(self):
        order = make_order()
        with pytest.raises(AccessDenied):
            check_transition(
                order, OrderStatus.CONFIRMED, Actor(role=Role.VENDOR, entity_id=uuid4())
            )

    def test_vendor_cannot_deliver_delivery_order(self):
        order = make_order(status=OrderStatus.PICKED_UP)
        with pytest.raises(AccessDenied):
            check_transition(order, OrderStatus.DELIVERED, vendor_of(order))

    def test_vendor_completes_pickup_order(self):
        order = make_order(status=OrderStatus.READY_FOR_PICKUP, order_type=OrderType.PICKUP)
        check_transition(order, OrderStatus.PICKED_UP, vendor_of(order))

    def test_skipping_to_delivered_is_invalid(self):
        order = make_order()
        with pytest.raises(InvalidTransition):
            check_transition(order, OrderStatus.DELIVERED, Actor(role=Role.ADMIN))

    def test_customer_cancels_only_early(self):
        order = make_order(status=OrderStatus.CONFIRMED)
        check_transition(order, OrderStatus.CANCELLED, customer_of(order))

        order = make_order(status=OrderStatus.PREPARING)
        with pytest.raises(AccessDenied):
            check_transition(order, OrderStatus.CANCELLED, customer_of(order))

    def test_customer_cannot_confirm(self):
        order = make_order()
        with pytest.raises(AccessDenied):
            check_transition(order, OrderStatus.CONFIRMED, customer_of(order))

    def test_only_assigned_partner_may_move_order(self):
        partner_id = uuid4()
        order = make_order(status=OrderStatus.PICKED_UP, partner=partner_id)

        check_transition(
            order,
            OrderStatus.OUT_FOR_DELIVERY,
            Actor(role=Role.DELIVERY, entity_id=partner_id),
        )
        with pytest.raises(AccessDenied):
            check_transition(
                order,
                OrderStatus.OUT_FOR_DELIVERY,
                Actor(role=Role.DELIVERY, entity_id=uuid4()),
            )

    def test_terminal_order_reports_already_terminal(self):
        order = make_order(status=OrderStatus.CANCELLED)
        with pytest.raises(AlreadyTerminal):
            check_transition(order, OrderStatus.CONFIRMED, vendor_of(order))

    def test_expected_status_mismatch_is_checked_first(self):
        order = make_order(status=OrderStatus.DELIVERED)
        with pytest.raises(StaleState):
            check_transition(
                order,
                OrderStatus.CANCELLED,
                Actor.system(),
                expected_status=OrderStatus.PLACED,
            )

    def test_system_may_cancel(self):
        order = make_order(status=OrderStatus.CONFIRMED)
        check_transition(order, OrderStatus.CANCELLED, Actor.system())


class TestStatusMessage:
    def test_per_type_message(self):
        assert status_message(OrderStatus.PICKED_UP, OrderType.PICKUP) == (
            "Order collected. Enjoy your meal!"
        )

    def test_falls_back_to_status_message(self):
        assert status_message(OrderStatus.PREPARING, OrderType.PICKUP) == (
            "Your order is being prepared"
        )
