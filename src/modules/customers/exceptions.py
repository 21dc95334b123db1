"""Customer domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import InvalidData, NotFound


class CustomerNotFound(NotFound):
    """The referenced customer does not exist."""

    default_message = "Customer not found."


class InactiveCustomer(InvalidData):
    """The customer is inactive and cannot place orders."""

    default_message = "Customer account is inactive."
