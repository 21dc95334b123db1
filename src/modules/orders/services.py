"""Order service layer (use cases).

``OrderService`` is the only writer of order lifecycle state.  Every command
follows the same shape:

1. load the order and run every validation and authorization check;
2. inside ``transaction.atomic()``, apply one conditional update keyed on
   ``(id, status, version)`` plus the history row and counter increments
   that belong to it;
3. once the transaction block has exited, hand the collected domain events
   to the event bus (real-time fan-out never runs for a rolled-back change).

A conditional update that matches no row raises ``StaleState``; nothing is
retried here, retry policy belongs to the caller.
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Q
from django.utils import timezone

from modules.core.actors import Actor, Role
from modules.core.exceptions import AccessDenied
from modules.customers.exceptions import CustomerNotFound, InactiveCustomer
from modules.delivery.assignment import get_assignment_policy
from modules.delivery.exceptions import DeliveryPartnerNotFound, PartnerNotApproved
from modules.delivery.models import DeliveryPartner
from modules.orders.constants import (
    CANCELLED_BY_ROLE,
    COMPLETION_SIGNAL_STATES,
    STATUS_TIMING_FIELDS,
    TERMINAL_STATES,
    OrderStatus,
    OrderType,
    RefundStatus,
)
from modules.orders.events import (
    DeliveryPartnerAssigned,
    OrderCompleted,
    OrderPlaced,
    OrderRated,
    OrderStatusChanged,
)
from modules.orders.exceptions import (
    AlreadyAssigned,
    AlreadyTerminal,
    InvalidTransition,
    OrderNotFound,
    StaleState,
)
from modules.orders.pricing import PricedLine, calculate_pricing
from modules.orders.ratings import RatingAggregator
from modules.orders.state_machine import (
    SideEffect,
    TransitionResult,
    check_transition,
    status_message,
)
from modules.vendors.exceptions import (
    MenuItemNotFound,
    MenuItemUnavailable,
    VendorNotFound,
    VendorUnavailable,
)
from modules.vendors.models import Vendor
from shared.infrastructure.bus import event_bus

if TYPE_CHECKING:
    from django.db import models

    from modules.customers.repositories.interfaces import ICustomerRepository
    from modules.delivery.assignment import AssignmentPolicy
    from modules.delivery.repositories.interfaces import IDeliveryPartnerRepository
    from modules.orders.dtos import PlaceOrderDTO, RateOrderDTO
    from modules.orders.models import Order
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.vendors.repositories.interfaces import IVendorRepository
    from shared.domain.events import DomainEvent, IEventBus

logger = structlog.get_logger(__name__)


class OrderService:
    """Application service for order use cases.

    Receives repositories, the assignment policy and the event bus via
    constructor injection.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        customer_repository: ICustomerRepository,
        vendor_repository: IVendorRepository,
        partner_repository: IDeliveryPartnerRepository,
        assignment_policy: Optional[AssignmentPolicy] = None,
        rating_aggregator: Optional[RatingAggregator] = None,
        bus: Optional[IEventBus] = None,
    ) -> None:
        self._order_repo = order_repository
        self._customer_repo = customer_repository
        self._vendor_repo = vendor_repository
        self._partner_repo = partner_repository
        self._assignment_policy = assignment_policy
        self._ratings = rating_aggregator or RatingAggregator()
        self._bus = bus or event_bus

    @property
    def order_repository(self) -> IOrderRepository:
        return self._order_repo

    @property
    def assignment_policy(self) -> AssignmentPolicy:
        if self._assignment_policy is None:
            self._assignment_policy = get_assignment_policy()
        return self._assignment_policy

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_order(self, dto: PlaceOrderDTO, actor: Actor) -> Tuple[Order, bool]:
        """Price and insert a new order.

        Returns ``(order, created)``; ``created`` is ``False`` when the
        idempotency key was already used by this customer.

        Raises:
            AccessDenied: the actor is not a customer.
            CustomerNotFound / InactiveCustomer: bad customer profile.
            VendorNotFound / VendorUnavailable: vendor missing or not open.
            MenuItemNotFound / MenuItemUnavailable: a cart line is not orderable.
        """
        if actor.role != Role.CUSTOMER:
            raise AccessDenied("Only customers can place orders.")

        log = logger.bind(customer_id=str(actor.entity_id), vendor_id=str(dto.vendor_id))

        if dto.idempotency_key:
            existing = self._replay(dto.idempotency_key, actor)
            if existing is not None:
                log.info("order.idempotency_hit", order_id=str(existing.id))
                return existing, False

        customer = self._customer_repo.get_by_id(str(actor.entity_id))
        if customer is None:
            raise CustomerNotFound()
        if not customer.is_active:
            raise InactiveCustomer()

        vendor = self._vendor_repo.get_by_id(str(dto.vendor_id))
        if vendor is None:
            raise VendorNotFound()
        if not vendor.accepts_orders:
            raise VendorUnavailable()

        menu = self._vendor_repo.get_menu_items(
            vendor.id, {line.menu_item_id for line in dto.items}
        )
        items: List[Dict[str, Any]] = []
        priced: List[PricedLine] = []
        for line in dto.items:
            menu_item = menu.get(line.menu_item_id)
            if menu_item is None:
                raise MenuItemNotFound(
                    f"Menu item {line.menu_item_id} is not on this vendor's menu."
                )
            if not menu_item.is_available:
                raise MenuItemUnavailable(f"Item {menu_item.name} is not available.")
            items.append(
                {
                    "menu_item_id": menu_item.id,
                    "name": menu_item.name,
                    "unit_price": menu_item.price,
                    "quantity": line.quantity,
                    "customizations": [
                        c.model_dump(mode="json") for c in line.customizations
                    ],
                    "special_instructions": line.special_instructions,
                }
            )
            priced.append(PricedLine(unit_price=menu_item.price, quantity=line.quantity))

        pricing = calculate_pricing(priced, dto.order_type)
        now = timezone.now()
        data = {
            "customer_id": customer.id,
            "vendor_id": vendor.id,
            "order_type": dto.order_type,
            "status": OrderStatus.PLACED,
            "subtotal": pricing.subtotal,
            "delivery_fee": pricing.delivery_fee,
            "tax_cgst": pricing.cgst,
            "tax_sgst": pricing.sgst,
            "tax_igst": pricing.igst,
            "tax_total": pricing.tax_total,
            "total": pricing.total,
            "delivery_address": dto.delivery_address,
            "special_instructions": dto.special_instructions,
            "payment_method": dto.payment_method,
            "placed_at": now,
            "estimated_delivery_at": now
            + timedelta(minutes=settings.ESTIMATED_DELIVERY_MINUTES),
            "idempotency_key": dto.idempotency_key,
        }

        try:
            with transaction.atomic():
                order = self._order_repo.create(data, items)
                self._order_repo.add_history(
                    order.id, OrderStatus.PLACED, actor, notes="Order placed"
                )
                self._vendor_repo.increment_order_count(vendor.id)
        except IntegrityError:
            # Lost a race on the same idempotency key.
            existing = (
                self._replay(dto.idempotency_key, actor) if dto.idempotency_key else None
            )
            if existing is None:
                raise
            return existing, False

        order = self._order_repo.get_by_id(str(order.id))
        log.info(
            "order.placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total=str(order.total),
        )
        self._bus.publish(
            OrderPlaced(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=customer.id,
                customer_name=customer.name,
                customer_email=customer.email,
                vendor_id=vendor.id,
                order_type=order.order_type,
                total=order.total,
                items=tuple(
                    {
                        "name": item["name"],
                        "quantity": item["quantity"],
                        "price": str(item["unit_price"]),
                        "customizations": item["customizations"],
                    }
                    for item in items
                ),
                delivery_address=order.delivery_address,
            )
        )
        return order, True

    def _replay(self, key: str, actor: Actor) -> Optional[Order]:
        existing = self._order_repo.get_by_idempotency_key(key)
        if existing is not None and not actor.is_customer(existing.customer_id):
            raise AccessDenied("Idempotency key belongs to another customer.")
        return existing

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def transition(
        self,
        order_id: UUID | str,
        target_status: str,
        actor: Actor,
        *,
        expected_status: Optional[str] = None,
        reason: str = "",
        notes: str = "",
        extra_patch: Optional[Dict[str, Any]] = None,
    ) -> TransitionResult:
        """Move an order to *target_status*.

        ``expected_status`` pins the status the caller based its decision
        on; if the order has moved since, the call fails with ``StaleState``
        before anything is written.

        ``extra_patch`` carries fields (payment, refund) that must change in
        the same conditional update as the status.

        Raises:
            OrderNotFound, StaleState, AlreadyTerminal, AccessDenied,
            InvalidTransition.
        """
        side_effects: List[SideEffect] = []
        events: List[DomainEvent] = []

        with transaction.atomic():
            order = self._load(order_id)
            log = logger.bind(
                order_id=str(order.id),
                current_status=order.status,
                target_status=target_status,
                actor_role=actor.role.value,
            )
            try:
                check_transition(order, target_status, actor, expected_status)
            except (StaleState, AlreadyTerminal, InvalidTransition) as exc:
                log.warning("order.transition_rejected", error=exc.code)
                raise

            now = timezone.now()
            prior_status = order.status
            patch: Dict[str, Any] = {"status": target_status}
            patch[STATUS_TIMING_FIELDS[target_status]] = now

            assigned_partner: Optional[DeliveryPartner] = None
            if (
                target_status == OrderStatus.READY
                and order.order_type == OrderType.DELIVERY
                and order.delivery_partner_id is None
            ):
                assigned_partner = self.assignment_policy.find_partner_for(order)
                if assigned_partner is not None:
                    patch["delivery_partner_id"] = assigned_partner.id
                    patch["assigned_at"] = now

            if target_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                patch["cancellation_reason"] = reason or (
                    f"{target_status.capitalize()} by {actor.role.value}"
                )
                patch["cancelled_by"] = CANCELLED_BY_ROLE[actor.role]
                if target_status == OrderStatus.REFUNDED:
                    patch["refund_amount"] = order.total
                    patch["refund_status"] = RefundStatus.PENDING
            if extra_patch:
                patch.update(extra_patch)

            if not self._order_repo.conditional_update(
                order.id, prior_status, order.version, patch
            ):
                log.warning("order.stale_state")
                raise StaleState()
            side_effects.append(SideEffect.STATUS_UPDATED)

            self._order_repo.add_history(
                order.id,
                target_status,
                actor,
                notes=notes or reason,
                old_status=prior_status,
            )
            side_effects.append(SideEffect.HISTORY_APPENDED)

            if target_status == OrderStatus.READY and order.order_type == OrderType.DELIVERY:
                if assigned_partner is not None:
                    side_effects.append(SideEffect.PARTNER_ASSIGNED)
                elif order.delivery_partner_id is None:
                    side_effects.append(SideEffect.PARTNER_UNAVAILABLE)
                    log.info("order.no_partner_available")

            if target_status in (OrderStatus.CANCELLED, OrderStatus.REFUNDED):
                side_effects.append(SideEffect.CANCELLATION_RECORDED)

            if target_status == OrderStatus.DELIVERED:
                self._vendor_repo.record_completed_order(order.vendor_id, order.total)
                side_effects.append(SideEffect.VENDOR_STATS_UPDATED)
                if order.delivery_partner_id is not None:
                    self._partner_repo.record_delivery(
                        order.delivery_partner_id,
                        Decimal(settings.DELIVERY_PARTNER_EARNING),
                    )
                    side_effects.append(SideEffect.PARTNER_STATS_UPDATED)

            order = self._load(order.id)
            events.extend(
                self._transition_events(order, prior_status, actor, assigned_partner)
            )

        log.info(
            "order.transitioned",
            new_status=target_status,
            side_effects=[str(effect) for effect in side_effects],
        )
        self._bus.publish_all(events)
        side_effects.append(SideEffect.EVENTS_DISPATCHED)
        return TransitionResult(order=order, side_effects=tuple(side_effects))

    def _transition_events(
        self,
        order: Order,
        prior_status: str,
        actor: Actor,
        assigned_partner: Optional[DeliveryPartner],
    ) -> List[DomainEvent]:
        events: List[DomainEvent] = [
            OrderStatusChanged(
                aggregate_id=order.id,
                order_number=order.order_number,
                customer_id=order.customer_id,
                vendor_id=order.vendor_id,
                delivery_partner_id=order.delivery_partner_id,
                old_status=prior_status,
                new_status=order.status,
                order_type=order.order_type,
                message=status_message(order.status, order.order_type),
                actor_role=actor.role.value,
                customer_email=order.customer.email,
            )
        ]
        if assigned_partner is not None:
            events.append(self._assigned_event(order, assigned_partner.id))
        if order.status in COMPLETION_SIGNAL_STATES:
            events.append(
                OrderCompleted(
                    aggregate_id=order.id,
                    order_number=order.order_number,
                    vendor_id=order.vendor_id,
                    status=order.status,
                    total=order.total,
                )
            )
        return events

    @staticmethod
    def _assigned_event(order: Order, partner_id: UUID) -> DeliveryPartnerAssigned:
        return DeliveryPartnerAssigned(
            aggregate_id=order.id,
            order_number=order.order_number,
            partner_id=partner_id,
            vendor_id=order.vendor_id,
            customer_id=order.customer_id,
            total=order.total,
            delivery_address=order.delivery_address,
        )

    # ------------------------------------------------------------------
    # Delivery assignment
    # ------------------------------------------------------------------

    def accept_delivery(self, order_id: UUID | str, actor: Actor) -> TransitionResult:
        """Self-assignment: a partner claims a ready order and picks it up.

        Assignment and the ``picked_up`` transition are one conditional
        update that also requires the order to be unassigned or already
        assigned to this partner.

        Raises:
            AccessDenied / PartnerNotApproved: not an approved partner.
            OrderNotFound, AlreadyTerminal, AlreadyAssigned, InvalidTransition,
            StaleState.
        """
        if actor.role != Role.DELIVERY:
            raise AccessDenied("Only delivery partners can accept deliveries.")
        partner = self._partner_repo.get_by_id(str(actor.entity_id))
        if partner is None:
            raise DeliveryPartnerNotFound()
        if not partner.is_approved:
            raise PartnerNotApproved()

        events: List[DomainEvent] = []
        with transaction.atomic():
            order = self._load(order_id)
            log = logger.bind(order_id=str(order.id), partner_id=str(partner.id))

            if order.status in TERMINAL_STATES:
                raise AlreadyTerminal(f"Order is already {order.status}.")
            if order.delivery_partner_id not in (None, partner.id):
                log.info("order.accept_rejected_assigned")
                raise AlreadyAssigned()
            if order.order_type != OrderType.DELIVERY:
                raise InvalidTransition("Only delivery orders can be accepted.")
            if order.status != OrderStatus.READY:
                raise InvalidTransition("Order is not ready for pickup.")

            now = timezone.now()
            newly_assigned = order.delivery_partner_id is None
            patch: Dict[str, Any] = {
                "status": OrderStatus.PICKED_UP,
                "picked_up_at": now,
                "delivery_partner_id": partner.id,
            }
            if newly_assigned:
                patch["assigned_at"] = now

            updated = self._order_repo.conditional_update(
                order.id,
                order.status,
                order.version,
                patch,
                condition=Q(delivery_partner__isnull=True)
                | Q(delivery_partner_id=partner.id),
            )
            if not updated:
                current = self._load(order.id)
                if current.delivery_partner_id not in (None, partner.id):
                    raise AlreadyAssigned()
                log.warning("order.stale_state")
                raise StaleState()

            side_effects = [SideEffect.STATUS_UPDATED]
            self._order_repo.add_history(
                order.id,
                OrderStatus.PICKED_UP,
                actor,
                notes="Delivery accepted",
                old_status=order.status,
            )
            side_effects.append(SideEffect.HISTORY_APPENDED)
            if newly_assigned:
                side_effects.append(SideEffect.PARTNER_ASSIGNED)

            prior_status = order.status
            order = self._load(order.id)
            events.extend(
                self._transition_events(
                    order, prior_status, actor, partner if newly_assigned else None
                )
            )

        log.info("order.delivery_accepted")
        self._bus.publish_all(events)
        side_effects.append(SideEffect.EVENTS_DISPATCHED)
        return TransitionResult(order=order, side_effects=tuple(side_effects))

    def assign_partner(self, order: Order) -> Optional[DeliveryPartner]:
        """Retry automatic assignment for a ready, unassigned delivery order.

        Returns the partner, or ``None`` when nobody is available or a
        concurrent assignment won.
        """
        partner = self.assignment_policy.find_partner_for(order)
        if partner is None:
            return None
        with transaction.atomic():
            assigned = self._order_repo.assign_partner(
                order.id, partner.id, timezone.now()
            )
        if not assigned:
            logger.info("order.assignment_lost_race", order_id=str(order.id))
            return None
        logger.info(
            "order.partner_assigned", order_id=str(order.id), partner_id=str(partner.id)
        )
        self._bus.publish(self._assigned_event(order, partner.id))
        return partner

    # ------------------------------------------------------------------
    # Rating
    # ------------------------------------------------------------------

    def rate_order(self, order_id: UUID | str, actor: Actor, dto: RateOrderDTO) -> Order:
        """Attach the customer's rating and fold it into the running aggregates.

        Raises:
            AccessDenied: not the ordering customer.
            InvalidTransition: the order is not delivered.
            AlreadyRated: the order already carries a rating.
        """
        if actor.role != Role.CUSTOMER:
            raise AccessDenied("Only customers can rate orders.")
        order = self._load(order_id)
        if not actor.is_customer(order.customer_id):
            raise AccessDenied("Order belongs to another customer.")
        if order.status != OrderStatus.DELIVERED:
            raise InvalidTransition("Only delivered orders can be rated.")

        with transaction.atomic():
            self._order_repo.add_rating(
                order.id,
                {
                    "overall": dto.overall,
                    "food": dto.food,
                    "delivery": dto.delivery,
                    "review": dto.review,
                },
            )
            average, count = self._ratings.apply_rating(
                Vendor, order.vendor_id, dto.overall
            )
            logger.info(
                "order.rated",
                order_id=str(order.id),
                vendor_id=str(order.vendor_id),
                vendor_average=str(average),
                vendor_count=count,
            )
            if dto.delivery is not None and order.delivery_partner_id is not None:
                self._ratings.apply_rating(
                    DeliveryPartner, order.delivery_partner_id, dto.delivery
                )

        self._bus.publish(
            OrderRated(
                aggregate_id=order.id,
                order_number=order.order_number,
                vendor_id=order.vendor_id,
                delivery_partner_id=order.delivery_partner_id,
                overall=dto.overall,
                food=dto.food,
                delivery=dto.delivery,
                review=dto.review,
            )
        )
        return self._load(order.id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: UUID | str, actor: Actor) -> Order:
        """Retrieve an order visible to *actor* (its parties and admins).

        Raises:
            OrderNotFound: unknown id.
            AccessDenied: the actor is not a party to the order.
        """
        order = self._load(order_id)
        if not (
            actor.is_privileged
            or actor.is_customer(order.customer_id)
            or actor.is_vendor(order.vendor_id)
            or actor.is_delivery_partner(order.delivery_partner_id)
        ):
            raise AccessDenied("Order belongs to another party.")
        return order

    def list_orders(self, actor: Actor, role: Role) -> "models.QuerySet[Order]":
        """Orders of the actor's own profile for the *role* listing.

        Admins see every order in any listing.
        """
        if actor.is_privileged:
            return self._order_repo.list()
        if actor.role != role:
            raise AccessDenied(f"Only {role.label.lower()}s can list these orders.")
        field = {
            Role.CUSTOMER: "customer_id",
            Role.VENDOR: "vendor_id",
            Role.DELIVERY: "delivery_partner_id",
        }[role]
        return self._order_repo.list({field: actor.entity_id})

    def _load(self, order_id: UUID | str) -> Order:
        order = self._order_repo.get_by_id(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return order


def build_order_service() -> OrderService:
    """Wire ``OrderService`` with the Django repositories."""
    from modules.customers.repositories.django_repository import (
        CustomerDjangoRepository,
    )
    from modules.delivery.repositories.django_repository import (
        DeliveryPartnerDjangoRepository,
    )
    from modules.orders.repositories.django_repository import OrderDjangoRepository
    from modules.vendors.repositories.django_repository import VendorDjangoRepository

    return OrderService(
        order_repository=OrderDjangoRepository(),
        customer_repository=CustomerDjangoRepository(),
        vendor_repository=VendorDjangoRepository(),
        partner_repository=DeliveryPartnerDjangoRepository(),
    )
