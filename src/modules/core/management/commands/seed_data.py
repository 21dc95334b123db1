from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.utils import timezone

from modules.core.actors import Actor, Role
from modules.customers.models import Customer
from modules.delivery.models import DeliveryPartner, PartnerStatus
from modules.orders.constants import OrderType, PaymentMethod
from modules.orders.dtos import PlaceOrderDTO, PlaceOrderItemDTO
from modules.orders.services import build_order_service
from modules.vendors.models import MenuItem, Vendor, VendorStatus

VENDORS = [
    (
        "Spice Route",
        Decimal("12.971599"),
        Decimal("77.594566"),
        [
            ("Paneer Butter Masala", Decimal("240.00")),
            ("Dal Makhani", Decimal("190.00")),
            ("Butter Naan", Decimal("45.00")),
            ("Jeera Rice", Decimal("120.00")),
        ],
    ),
    (
        "Dosa Corner",
        Decimal("12.935242"),
        Decimal("77.624480"),
        [
            ("Masala Dosa", Decimal("110.00")),
            ("Idli Vada", Decimal("80.00")),
            ("Filter Coffee", Decimal("35.00")),
        ],
    ),
    (
        "Tandoor House",
        Decimal("12.914142"),
        Decimal("77.678703"),
        [
            ("Chicken Tikka", Decimal("320.00")),
            ("Tandoori Roti", Decimal("25.00")),
            ("Lassi", Decimal("70.00")),
        ],
    ),
]

CUSTOMERS = [
    ("Asha Rao", "asha@example.com", "9876500001"),
    ("Vikram Shetty", "vikram@example.com", "9876500002"),
    ("Meera Iyer", "meera@example.com", "9876500003"),
    ("Rohan Das", "rohan@example.com", "9876500004"),
]

PARTNERS = [
    ("Ravi Kumar", "9876511001", Decimal("12.960000"), Decimal("77.600000")),
    ("Sunil Naik", "9876511002", Decimal("12.930000"), Decimal("77.640000")),
]


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def add_arguments(self, parser):
        parser.add_argument(
            "--orders", type=int, default=10, help="Number of orders to place."
        )

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        self._seed_admin()
        vendors = self._seed_vendors()
        customers = self._seed_customers()
        partners = self._seed_partners()
        orders_created = self._seed_orders(customers, vendors, options["orders"])

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"vendors={len(vendors)}, "
                f"customers={len(customers)}, "
                f"partners={len(partners)}, "
                f"orders={orders_created}"
            )
        )

    def _user(self, username: str, **extra):
        User = get_user_model()
        user, created = User.objects.get_or_create(username=username, defaults=extra)
        if created:
            user.set_password(f"{username}123")
            user.save()
        return user

    def _seed_admin(self) -> None:
        User = get_user_model()
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")

    def _seed_vendors(self) -> list[Vendor]:
        self.stdout.write("Creating vendors and menus...")
        vendors: list[Vendor] = []
        for shop_name, lat, lng, menu in VENDORS:
            username = shop_name.lower().replace(" ", "_")
            vendor, _ = Vendor.objects.get_or_create(
                user=self._user(username),
                defaults={
                    "shop_name": shop_name,
                    "status": VendorStatus.APPROVED,
                    "latitude": lat,
                    "longitude": lng,
                },
            )
            for name, price in menu:
                MenuItem.objects.get_or_create(
                    vendor=vendor, name=name, defaults={"price": price}
                )
            vendors.append(vendor)
        self.stdout.write(self.style.SUCCESS("Creating vendors and menus... Done!"))
        return vendors

    def _seed_customers(self) -> list[Customer]:
        self.stdout.write("Creating customers...")
        customers: list[Customer] = []
        for name, email, phone in CUSTOMERS:
            customer, _ = Customer.objects.get_or_create(
                email=email,
                defaults={
                    "user": self._user(email.split("@")[0], email=email),
                    "name": name,
                    "phone": phone,
                },
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_partners(self) -> list[DeliveryPartner]:
        self.stdout.write("Creating delivery partners...")
        partners: list[DeliveryPartner] = []
        for name, phone, lat, lng in PARTNERS:
            partner, _ = DeliveryPartner.objects.get_or_create(
                user=self._user(name.split()[0].lower()),
                defaults={
                    "name": name,
                    "phone": phone,
                    "status": PartnerStatus.APPROVED,
                    "is_online": True,
                    "last_online_at": timezone.now(),
                    "latitude": lat,
                    "longitude": lng,
                },
            )
            partners.append(partner)
        self.stdout.write(self.style.SUCCESS("Creating delivery partners... Done!"))
        return partners

    def _seed_orders(
        self, customers: list[Customer], vendors: list[Vendor], count: int
    ) -> int:
        """Orders go through ``OrderService`` so pricing and history are real."""
        self.stdout.write("Placing orders...")
        service = build_order_service()
        created_count = 0
        for i in range(count):
            customer = random.choice(customers)
            vendor = random.choice(vendors)
            menu = list(vendor.menu_items.filter(is_available=True))
            order_type = random.choice(list(OrderType))
            lines = random.sample(menu, k=random.randint(1, min(3, len(menu))))
            dto = PlaceOrderDTO(
                vendor_id=vendor.id,
                order_type=order_type,
                items=[
                    PlaceOrderItemDTO(menu_item_id=item.id, quantity=random.randint(1, 3))
                    for item in lines
                ],
                payment_method=random.choice([PaymentMethod.COD, PaymentMethod.UPI]),
                delivery_address=(
                    {"street": f"{i + 1} MG Road", "city": "Bengaluru", "pincode": "560001"}
                    if order_type == OrderType.DELIVERY
                    else {}
                ),
                idempotency_key=f"seed-order-{i + 1}",
            )
            _, created = service.place_order(
                dto, Actor(role=Role.CUSTOMER, entity_id=customer.id, user_id=customer.user_id)
            )
            created_count += int(created)
        self.stdout.write(self.style.SUCCESS("Placing orders... Done!"))
        return created_count
