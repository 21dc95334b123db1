"""Order domain exceptions.

Raised by the service layer when a business rule is violated and rendered
by ``modules.core.exceptions.api_exception_handler``; views never catch
them.
"""

from __future__ import annotations

from rest_framework import status

from modules.core.exceptions import Conflict, DomainError, InvalidData, NotFound


class OrderNotFound(NotFound):
    default_message = "Order not found."


class InvalidOrderData(InvalidData):
    """Malformed order request (empty cart, foreign menu item, bad quantity)."""


class InvalidTransition(DomainError):
    """The requested edge is not in the order state machine."""

    code = "invalid_transition"
    default_message = "Invalid status transition."


class StaleState(DomainError):
    """The order moved on between read and write; the caller may retry."""

    status_code = status.HTTP_409_CONFLICT
    code = "stale_state"
    default_message = "Order was modified concurrently. Reload and retry."


class AlreadyTerminal(DomainError):
    """The order is delivered, cancelled or refunded."""

    status_code = status.HTTP_409_CONFLICT
    code = "already_terminal"
    default_message = "Order is already in a final state."


class AlreadyAssigned(Conflict):
    default_message = "Order is already assigned to another delivery partner."


class AlreadyRated(Conflict):
    default_message = "Order has already been rated."
