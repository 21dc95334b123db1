"""Concurrency integration tests.

Proves with real threads that the optimistic conditional update and the
single-statement rating aggregates hold under contention.

Scenarios:
- 8 customers rate 8 delivered orders of one vendor at once: the vendor's
  count and average reflect every rating (no lost update).
- The same order rated twice at once: exactly one rating lands.
- The vendor confirms while the customer cancels the same placed order:
  exactly one wins, the other gets ``StaleState``.
- Two partners claim the same ready order: exactly one gets it.

Uses ``TransactionTestCase`` so each thread can see committed data.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal
from threading import Barrier

from django.contrib.auth import get_user_model
from django.db import connections
from django.test import TransactionTestCase

from modules.core.actors import Actor, Role
from modules.customers.models import Customer
from modules.delivery.models import DeliveryPartner, PartnerStatus
from modules.orders.constants import OrderStatus, OrderType, PaymentMethod
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO, RateOrderDTO
from modules.orders.exceptions import AlreadyAssigned, AlreadyRated, StaleState
from modules.orders.models import Order, OrderRating
from modules.orders.services import build_order_service
from modules.vendors.models import MenuItem, Vendor, VendorStatus

logger = logging.getLogger(__name__)

User = get_user_model()

NUM_RATERS = 8
ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


def actor_for(profile, role: Role) -> Actor:
    return Actor(role=role, entity_id=profile.id, user_id=profile.user_id)


def run_together(*calls):
    """Run *calls* on separate threads released at the same instant.

    Returns each call's result, or the exception it raised.
    """
    barrier = Barrier(len(calls))

    def _run(call):
        connections.close_all()
        try:
            barrier.wait()
            return call()
        except Exception as exc:
            logger.warning("Thread raised %s (expected for losers)", type(exc).__name__)
            return exc
        finally:
            connections.close_all()

    with ThreadPoolExecutor(max_workers=len(calls)) as pool:
        return list(pool.map(_run, calls))


class ConcurrencyTestCase(TransactionTestCase):
    def setUp(self):
        self.service = build_order_service()
        self.vendor = Vendor.objects.create(
            user=User.objects.create_user(username="vendor", password="x"),
            shop_name="Spice Route",
            status=VendorStatus.APPROVED,
            is_active=True,
        )
        self.item = MenuItem.objects.create(
            vendor=self.vendor, name="Masala Dosa", price=Decimal("100.00"), is_available=True
        )
        self.partner = self.make_partner("partner")

    def make_customer(self, n: int) -> Customer:
        return Customer.objects.create(
            user=User.objects.create_user(username=f"customer{n}", password="x"),
            name=f"Customer {n}",
            email=f"customer{n}@example.com",
            is_active=True,
        )

    def make_partner(self, username: str) -> DeliveryPartner:
        return DeliveryPartner.objects.create(
            user=User.objects.create_user(username=username, password="x"),
            name=username.title(),
            phone="9876511000",
            status=PartnerStatus.APPROVED,
            is_active=True,
            is_online=True,
        )

    def place(self, customer: Customer) -> Order:
        dto = PlaceOrderDTO(
            vendor_id=self.vendor.id,
            order_type=OrderType.DELIVERY,
            items=[PlaceOrderItemDTO(menu_item_id=self.item.id, quantity=1)],
            payment_method=PaymentMethod.COD,
            delivery_address=ADDRESS,
        )
        order, _ = self.service.place_order(dto, actor_for(customer, Role.CUSTOMER))
        return order

    def advance(self, order: Order, *statuses: str) -> Order:
        vendor = actor_for(self.vendor, Role.VENDOR)
        for status in statuses:
            order = self.service.transition(order.id, status, vendor).order
        return order

    def deliver(self, order: Order) -> Order:
        order = self.advance(order, "confirmed", "preparing", "ready")
        partner = actor_for(self.partner, Role.DELIVERY)
        self.service.transition(order.id, "picked_up", partner)
        return self.service.transition(order.id, "delivered", partner).order


class TestConcurrentRatings(ConcurrencyTestCase):
    """Running aggregates never lose an update."""

    def test_every_rating_counted(self):
        customers = [self.make_customer(n) for n in range(NUM_RATERS)]
        orders = [self.deliver(self.place(customer)) for customer in customers]
        scores = [5, 4, 3, 5, 2, 4, 5, 2]

        results = run_together(
            *(
                lambda order=order, customer=customer, score=score: self.service.rate_order(
                    order.id, actor_for(customer, Role.CUSTOMER), RateOrderDTO(overall=score)
                )
                for order, customer, score in zip(orders, customers, scores)
            )
        )

        self.assertFalse([r for r in results if isinstance(r, Exception)])
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.rating_count, NUM_RATERS)
        self.assertEqual(self.vendor.rating_total, Decimal(sum(scores)))
        self.assertEqual(self.vendor.rating_average, Decimal("3.75"))

    def test_same_order_rated_once(self):
        customer = self.make_customer(1)
        order = self.deliver(self.place(customer))
        actor = actor_for(customer, Role.CUSTOMER)

        results = run_together(
            lambda: self.service.rate_order(order.id, actor, RateOrderDTO(overall=5)),
            lambda: self.service.rate_order(order.id, actor, RateOrderDTO(overall=1)),
        )

        self.assertEqual(sum(isinstance(r, Order) for r in results), 1)
        self.assertEqual(sum(isinstance(r, AlreadyRated) for r in results), 1)
        self.assertEqual(OrderRating.objects.filter(order_id=order.id).count(), 1)
        self.vendor.refresh_from_db()
        self.assertEqual(self.vendor.rating_count, 1)


class TestRacingTransitions(ConcurrencyTestCase):
    """Exactly one of two writers on the same order wins."""

    def test_confirm_races_cancel(self):
        customer = self.make_customer(1)
        order = self.place(customer)

        results = run_together(
            lambda: self.service.transition(
                order.id,
                OrderStatus.CONFIRMED,
                actor_for(self.vendor, Role.VENDOR),
                expected_status=OrderStatus.PLACED,
            ),
            lambda: self.service.transition(
                order.id,
                OrderStatus.CANCELLED,
                actor_for(customer, Role.CUSTOMER),
                expected_status=OrderStatus.PLACED,
            ),
        )

        winners = [r for r in results if not isinstance(r, Exception)]
        losers = [r for r in results if isinstance(r, Exception)]
        self.assertEqual(len(winners), 1)
        self.assertEqual(len(losers), 1)
        self.assertIsInstance(losers[0], StaleState)

        order.refresh_from_db()
        self.assertEqual(order.status, winners[0].order.status)
        self.assertEqual(order.version, 2)
        self.assertEqual(order.status_history.count(), 2)

    def test_two_partners_claim_same_order(self):
        self.partner.is_online = False
        self.partner.save()
        order = self.advance(self.place(self.make_customer(1)), "confirmed", "ready")
        first = self.make_partner("rider1")
        second = self.make_partner("rider2")

        results = run_together(
            lambda: self.service.accept_delivery(order.id, actor_for(first, Role.DELIVERY)),
            lambda: self.service.accept_delivery(order.id, actor_for(second, Role.DELIVERY)),
        )

        self.assertEqual(sum(not isinstance(r, Exception) for r in results), 1)
        self.assertEqual(sum(isinstance(r, AlreadyAssigned) for r in results), 1)
        order.refresh_from_db()
        self.assertIn(order.delivery_partner_id, {first.id, second.id})
