"""Delivery domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import AccessDenied, NotFound


class DeliveryPartnerNotFound(NotFound):
    default_message = "Delivery partner profile not found."


class PartnerNotApproved(AccessDenied):
    """Pending, rejected, suspended or deactivated partners cannot work orders."""

    default_message = "Delivery partner is not approved."
