"""Order state machine rules.

Pure checks over an order snapshot and an actor; nothing here touches the
database.  ``OrderService.transition`` runs ``check_transition`` before it
writes anything, so a rejected request leaves no trace.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Optional, Tuple

from modules.core.actors import Actor, Role
from modules.core.exceptions import AccessDenied
from modules.orders.constants import (
    COLLECTION_ONLY_STATES,
    CUSTOMER_CANCELLABLE_FROM,
    DEFAULT_STATUS_MESSAGE,
    DELIVERY_ONLY_STATES,
    PARTNER_TARGETS,
    STATUS_MESSAGES,
    STATUS_MESSAGES_BY_TYPE,
    TERMINAL_STATES,
    VALID_TRANSITIONS,
    VENDOR_COLLECTION_TARGETS,
    VENDOR_TARGETS,
    OrderStatus,
    OrderType,
)
from modules.orders.exceptions import AlreadyTerminal, InvalidTransition, StaleState

if TYPE_CHECKING:
    from modules.orders.models import Order


class SideEffect(StrEnum):
    STATUS_UPDATED = "status_updated"
    HISTORY_APPENDED = "history_appended"
    PARTNER_ASSIGNED = "partner_assigned"
    PARTNER_UNAVAILABLE = "partner_unavailable"
    VENDOR_STATS_UPDATED = "vendor_stats_updated"
    PARTNER_STATS_UPDATED = "partner_stats_updated"
    CANCELLATION_RECORDED = "cancellation_recorded"
    EVENTS_DISPATCHED = "events_dispatched"


@dataclass(frozen=True)
class TransitionResult:
    order: Order
    side_effects: Tuple[SideEffect, ...]


def is_edge_allowed(current: str, target: str, order_type: str) -> bool:
    """Whether ``current -> target`` is in the graph for this order type."""
    if target not in VALID_TRANSITIONS.get(current, set()):
        return False
    if target in DELIVERY_ONLY_STATES and order_type != OrderType.DELIVERY:
        return False
    if target in COLLECTION_ONLY_STATES and order_type == OrderType.DELIVERY:
        return False
    return True


def check_actor(order: Order, target: str, actor: Actor) -> None:
    """Raise ``AccessDenied`` unless *actor* may drive *order* to *target*."""
    if actor.is_privileged:
        return

    if actor.role == Role.VENDOR:
        if not actor.is_vendor(order.vendor_id):
            raise AccessDenied("Order belongs to another vendor.")
        allowed = set(VENDOR_TARGETS)
        if order.order_type != OrderType.DELIVERY:
            allowed |= VENDOR_COLLECTION_TARGETS
        if target not in allowed:
            raise AccessDenied(f"Vendors cannot move an order to {target}.")
        return

    if actor.role == Role.DELIVERY:
        if not actor.is_delivery_partner(order.delivery_partner_id):
            raise AccessDenied("Order is not assigned to this delivery partner.")
        if target not in PARTNER_TARGETS:
            raise AccessDenied(f"Delivery partners cannot move an order to {target}.")
        return

    if actor.role == Role.CUSTOMER:
        if not actor.is_customer(order.customer_id):
            raise AccessDenied("Order belongs to another customer.")
        if target != OrderStatus.CANCELLED:
            raise AccessDenied("Customers can only cancel orders.")
        if order.status not in CUSTOMER_CANCELLABLE_FROM:
            raise AccessDenied(
                "Order can no longer be cancelled by the customer."
            )
        return

    raise AccessDenied()


def check_transition(
    order: Order,
    target: str,
    actor: Actor,
    expected_status: Optional[str] = None,
) -> None:
    """Validate a transition request in the documented order.

    Raises:
        StaleState: *expected_status* no longer matches the order.
        AlreadyTerminal: the order is delivered, cancelled or refunded.
        AccessDenied: the actor may not drive this transition.
        InvalidTransition: the edge is not in the graph for this order type.
    """
    if expected_status is not None and order.status != expected_status:
        raise StaleState(
            f"Order is {order.status}, expected {expected_status}."
        )
    if order.status in TERMINAL_STATES:
        raise AlreadyTerminal(f"Order is already {order.status}.")
    check_actor(order, target, actor)
    if not is_edge_allowed(order.status, target, order.order_type):
        raise InvalidTransition(
            f"Cannot transition a {order.order_type} order from "
            f"{order.status} to {target}."
        )


def status_message(status: str, order_type: str) -> str:
    return STATUS_MESSAGES_BY_TYPE.get(
        (status, order_type), STATUS_MESSAGES.get(status, DEFAULT_STATUS_MESSAGE)
    )
