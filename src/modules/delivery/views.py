"""Delivery partner API views (availability and live location)."""

from __future__ import annotations

from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from modules.core.actors import resolve_actor
from modules.delivery.repositories.django_repository import (
    DeliveryPartnerDjangoRepository,
)
from modules.delivery.serializers import (
    DeliveryPartnerStatusSerializer,
    LocationSerializer,
)
from modules.delivery.services import DeliveryPartnerService
from modules.orders.repositories.django_repository import OrderDjangoRepository


class DeliveryPartnerView(APIView):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = DeliveryPartnerService(
            partner_repository=DeliveryPartnerDjangoRepository(),
            order_repository=OrderDjangoRepository(),
        )


class ToggleOnlineView(DeliveryPartnerView):
    """PUT /api/v1/delivery/toggle-online/"""

    def put(self, request: Request) -> Response:
        partner = self._service.toggle_online(resolve_actor(request.user))
        return Response(
            {
                "success": True,
                "message": f"You are now {'online' if partner.is_online else 'offline'}",
                "partner": DeliveryPartnerStatusSerializer(partner).data,
            }
        )


class UpdateLocationView(DeliveryPartnerView):
    """PUT /api/v1/delivery/location/"""

    def put(self, request: Request) -> Response:
        serializer = LocationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        partner = self._service.update_location(
            resolve_actor(request.user),
            serializer.validated_data["latitude"],
            serializer.validated_data["longitude"],
        )
        return Response(
            {
                "success": True,
                "message": "Location updated successfully",
                "partner": DeliveryPartnerStatusSerializer(partner).data,
            }
        )
