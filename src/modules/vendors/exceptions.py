"""Vendor domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import InvalidData, NotFound


class VendorNotFound(NotFound):
    default_message = "Vendor not found."


class VendorUnavailable(InvalidData):
    """The vendor is inactive or not approved and cannot take orders."""

    default_message = "Vendor is not accepting orders."


class MenuItemNotFound(NotFound):
    default_message = "Menu item not found."


class MenuItemUnavailable(InvalidData):
    default_message = "Menu item is not available."
