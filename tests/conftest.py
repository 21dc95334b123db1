from __future__ import annotations

import hashlib
import hmac
import time
from decimal import Decimal
from itertools import count
from types import SimpleNamespace

import pytest
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient

from modules.core.actors import Actor, Role
from modules.customers.models import Customer
from modules.delivery.models import DeliveryPartner, PartnerStatus
from modules.orders.constants import OrderType, PaymentMethod
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.services import build_order_service
from modules.vendors.models import MenuItem, Vendor, VendorStatus
from shared.infrastructure.notifier import InMemoryChannelTransport, configure_notifier

User = get_user_model()

_seq = count(1)

ADDRESS = {"street": "12 MG Road", "city": "Bengaluru", "pincode": "560001"}


@pytest.fixture(autouse=True)
def _use_db(db):
    """Automatically use the test database for all tests."""


@pytest.fixture(autouse=True)
def transport():
    """Fresh in-memory notifier transport per test."""
    transport = InMemoryChannelTransport()
    configure_notifier(transport)
    return transport


@pytest.fixture()
def api_client():
    """DRF APIClient for testing API endpoints."""
    return APIClient()


@pytest.fixture()
def api_client_with_correlation(api_client):
    """APIClient pre-configured with a known correlation ID header."""
    cid = "test-correlation-id-fixture"
    api_client.defaults["HTTP_X_REQUEST_ID"] = cid
    return api_client, cid


# ---------------------------------------------------------------------------
# Marketplace parties
# ---------------------------------------------------------------------------


def make_user(prefix: str = "user", **extra):
    return User.objects.create_user(
        username=f"{prefix}{next(_seq)}", password="testpass123", **extra
    )


def make_customer(**overrides) -> Customer:
    n = next(_seq)
    data = {
        "user": make_user("customer"),
        "name": f"Customer {n}",
        "email": f"customer{n}@example.com",
        "phone": "9876500000",
        "is_active": True,
    }
    data.update(overrides)
    return Customer.objects.create(**data)


def make_vendor(**overrides) -> Vendor:
    data = {
        "user": make_user("vendor"),
        "shop_name": f"Shop {next(_seq)}",
        "status": VendorStatus.APPROVED,
        "is_active": True,
        "latitude": Decimal("12.971599"),
        "longitude": Decimal("77.594566"),
    }
    data.update(overrides)
    return Vendor.objects.create(**data)


def make_menu_item(vendor: Vendor, price: str = "100.00", **overrides) -> MenuItem:
    data = {
        "vendor": vendor,
        "name": f"Dish {next(_seq)}",
        "price": Decimal(price),
        "is_available": True,
    }
    data.update(overrides)
    return MenuItem.objects.create(**data)


def make_partner(**overrides) -> DeliveryPartner:
    data = {
        "user": make_user("partner"),
        "name": f"Partner {next(_seq)}",
        "phone": "9876511000",
        "status": PartnerStatus.APPROVED,
        "is_active": True,
        "is_online": True,
    }
    data.update(overrides)
    return DeliveryPartner.objects.create(**data)


def actor_for(profile) -> Actor:
    role = {
        Customer: Role.CUSTOMER,
        Vendor: Role.VENDOR,
        DeliveryPartner: Role.DELIVERY,
    }[type(profile)]
    return Actor(role=role, entity_id=profile.id, user_id=profile.user_id)


ADMIN = Actor(role=Role.ADMIN)


@pytest.fixture()
def customer():
    return make_customer()


@pytest.fixture()
def vendor():
    return make_vendor()


@pytest.fixture()
def menu_item(vendor):
    return make_menu_item(vendor, "100.00")


@pytest.fixture()
def partner():
    return make_partner()


@pytest.fixture()
def order_service():
    return build_order_service()


@pytest.fixture()
def place_order(order_service, customer, vendor, menu_item):
    """Factory placing an order through ``OrderService``.

    Defaults to a delivery order of 2 x 100.00 from the ``vendor`` fixture.
    """

    def _place(
        order_type: str = OrderType.DELIVERY,
        quantity: int = 2,
        payment_method: str = PaymentMethod.COD,
        by: Customer | None = None,
        item: MenuItem | None = None,
        **extra,
    ):
        buyer = by or customer
        line = item or menu_item
        dto = PlaceOrderDTO(
            vendor_id=line.vendor_id,
            order_type=order_type,
            items=[PlaceOrderItemDTO(menu_item_id=line.id, quantity=quantity)],
            payment_method=payment_method,
            delivery_address=ADDRESS if order_type == OrderType.DELIVERY else {},
            **extra,
        )
        order, _ = order_service.place_order(dto, actor_for(buyer))
        return order

    return _place


@pytest.fixture()
def advance(order_service, vendor):
    """Drive an order through vendor transitions: ``advance(order, "confirmed", ...)``."""

    def _advance(order, *statuses, actor: Actor | None = None):
        for status in statuses:
            order = order_service.transition(
                order.id, status, actor or actor_for(vendor)
            ).order
        return order

    return _advance


# ---------------------------------------------------------------------------
# Authenticated API clients
# ---------------------------------------------------------------------------


def client_for(profile=None, *, staff: bool = False) -> APIClient:
    client = APIClient()
    user = profile.user if profile is not None else make_user("admin", is_staff=staff)
    client.force_authenticate(user=user)
    return client


@pytest.fixture()
def customer_client(customer):
    return client_for(customer)


@pytest.fixture()
def vendor_client(vendor):
    return client_for(vendor)


@pytest.fixture()
def partner_client(partner):
    return client_for(partner)


@pytest.fixture()
def admin_client():
    return client_for(staff=True)


@pytest.fixture()
def make():
    """Factories and actor helpers for tests that need extra parties."""
    return SimpleNamespace(
        user=make_user,
        customer=make_customer,
        vendor=make_vendor,
        menu_item=make_menu_item,
        partner=make_partner,
        actor=actor_for,
        admin=ADMIN,
        client=client_for,
        address=ADDRESS,
    )


# ---------------------------------------------------------------------------
# Stripe webhooks
# ---------------------------------------------------------------------------


def sign_stripe_payload(body: bytes, secret: str, timestamp: int | None = None) -> str:
    """Build a ``Stripe-Signature`` header the way Stripe signs events."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode() + body
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture()
def sign_webhook():
    return sign_stripe_payload
