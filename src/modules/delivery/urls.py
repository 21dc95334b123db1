"""Delivery partner URL configuration."""

from __future__ import annotations

from django.urls import path

from modules.delivery.views import ToggleOnlineView, UpdateLocationView

urlpatterns = [
    path(
        "delivery/toggle-online/", ToggleOnlineView.as_view(), name="delivery-toggle-online"
    ),
    path("delivery/location/", UpdateLocationView.as_view(), name="delivery-location"),
]
