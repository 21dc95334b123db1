"""Integration tests for partner self-assignment and the assignment sweep.

Covers:
  - ``accept_delivery`` on an unassigned ready order (assign + pick up).
  - A second partner is rejected with ``AlreadyAssigned``.
  - Orders that are not ready, not delivery, or closed.
  - ``assign_waiting_orders`` picks up orders left without a partner.
"""

import pytest

from modules.core.exceptions import AccessDenied
from modules.delivery.exceptions import PartnerNotApproved
from modules.delivery.models import PartnerStatus
from modules.orders.constants import OrderStatus, OrderType
from modules.orders.exceptions import AlreadyAssigned, AlreadyTerminal, InvalidTransition
from modules.orders.state_machine import SideEffect
from modules.orders.tasks import assign_waiting_orders

pytestmark = pytest.mark.integration


@pytest.fixture()
def waiting_order(place_order, advance):
    """A ready delivery order nobody was available to take."""
    return advance(place_order(), "confirmed", "preparing", "ready")


class TestAcceptDelivery:
    def test_claims_and_picks_up(self, waiting_order, order_service, make, transport):
        partner = make.partner()

        result = order_service.accept_delivery(waiting_order.id, make.actor(partner))

        assert result.order.status == OrderStatus.PICKED_UP
        assert result.order.delivery_partner_id == partner.id
        assert result.order.assigned_at is not None
        assert SideEffect.PARTNER_ASSIGNED in result.side_effects
        last = result.order.status_history.last()
        assert last.status == OrderStatus.PICKED_UP
        assert last.notes == "Delivery accepted"
        events = [event for event, _ in transport.messages_for(f"delivery-{partner.id}")]
        assert "order-status-updated" in events

    def test_second_partner_rejected(self, waiting_order, order_service, make):
        first, second = make.partner(), make.partner()
        order_service.accept_delivery(waiting_order.id, make.actor(first))

        with pytest.raises(AlreadyAssigned):
            order_service.accept_delivery(waiting_order.id, make.actor(second))

    def test_assigned_partner_can_accept(self, place_order, advance, order_service, partner, make):
        order = advance(place_order(), "confirmed", "ready")
        assert order.delivery_partner_id == partner.id

        result = order_service.accept_delivery(order.id, make.actor(partner))

        assert result.order.status == OrderStatus.PICKED_UP
        assert SideEffect.PARTNER_ASSIGNED not in result.side_effects

    def test_order_not_ready(self, place_order, order_service, make):
        with pytest.raises(InvalidTransition):
            order_service.accept_delivery(place_order().id, make.actor(make.partner()))

    def test_pickup_order(self, place_order, advance, order_service, make):
        order = advance(place_order(order_type=OrderType.PICKUP), "ready")
        with pytest.raises(InvalidTransition):
            order_service.accept_delivery(order.id, make.actor(make.partner()))

    def test_cancelled_order(self, place_order, order_service, customer, make):
        order = place_order()
        order_service.transition(order.id, "cancelled", make.actor(customer))

        with pytest.raises(AlreadyTerminal):
            order_service.accept_delivery(order.id, make.actor(make.partner()))

    def test_unapproved_partner(self, waiting_order, order_service, make):
        partner = make.partner(status=PartnerStatus.PENDING)
        with pytest.raises(PartnerNotApproved):
            order_service.accept_delivery(waiting_order.id, make.actor(partner))

    def test_vendor_cannot_accept(self, waiting_order, order_service, vendor, make):
        with pytest.raises(AccessDenied):
            order_service.accept_delivery(waiting_order.id, make.actor(vendor))


class TestAssignmentSweep:
    def test_assigns_when_partner_comes_online(self, waiting_order, make, transport):
        partner = make.partner()

        summary = assign_waiting_orders()

        assert summary == {"waiting": 1, "assigned": 1}
        waiting_order.refresh_from_db()
        assert waiting_order.delivery_partner_id == partner.id
        assert waiting_order.status == OrderStatus.READY
        events = [event for event, _ in transport.messages_for(f"delivery-{partner.id}")]
        assert events == ["new-delivery-request"]

    def test_nobody_online(self, waiting_order):
        assert assign_waiting_orders() == {"waiting": 1, "assigned": 0}

    def test_assigned_orders_are_ignored(self, place_order, advance, partner):
        advance(place_order(), "ready")
        assert assign_waiting_orders() == {"waiting": 0, "assigned": 0}
