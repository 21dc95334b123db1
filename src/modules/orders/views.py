"""Order API views.

Exposes the ``OrderService`` via HTTP using DRF ViewSets.  Domain errors
propagate to ``api_exception_handler``, which renders them with their
status code; views only translate HTTP payloads into DTOs.
"""

from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet
from django_filters.rest_framework import DjangoFilterBackend

from modules.core.actors import Role, resolve_actor
from modules.core.pagination import StandardResultsSetPagination
from modules.orders.dtos import PlaceOrderDTO, RateOrderDTO, TransitionRequestDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.serializers import (
    OrderListSerializer,
    OrderSerializer,
    PlaceOrderSerializer,
    RateOrderSerializer,
    StatusUpdateSerializer,
)
from modules.orders.services import build_order_service


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: every write goes through
    ``OrderService`` and its conditional updates.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    pagination_class = StandardResultsSetPagination

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()

    def get_throttles(self) -> list[BaseThrottle]:
        """Define throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_creation"
        elif self.action in {"customer", "vendor", "delivery", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Supports idempotency via the ``Idempotency-Key`` header.
        Returns 200 if the key was already used, 201 for new orders.
        """
        actor = resolve_actor(request.user)
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        dto = PlaceOrderDTO(
            **serializer.validated_data,
            idempotency_key=request.headers.get("Idempotency-Key"),
        )
        order, created = self._service.place_order(dto, actor)

        return Response(
            {
                "success": True,
                "message": "Order placed successfully"
                if created
                else "Order already placed",
                "order": OrderSerializer(order).data,
            },
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    # ------------------------------------------------------------------
    # Lists (one per party)
    # ------------------------------------------------------------------

    def _list_for(self, request: Request, role: Role) -> Response:
        actor = resolve_actor(request.user)
        queryset = self.filter_queryset(self._service.list_orders(actor, role))
        page = self.paginate_queryset(queryset)
        serializer = OrderListSerializer(page, many=True)
        return self.get_paginated_response(serializer.data)

    @action(detail=False, methods=["get"])
    def customer(self, request: Request) -> Response:
        """GET /api/v1/orders/customer/"""
        return self._list_for(request, Role.CUSTOMER)

    @action(detail=False, methods=["get"])
    def vendor(self, request: Request) -> Response:
        """GET /api/v1/orders/vendor/"""
        return self._list_for(request, Role.VENDOR)

    @action(detail=False, methods=["get"])
    def delivery(self, request: Request) -> Response:
        """GET /api/v1/orders/delivery/"""
        return self._list_for(request, Role.DELIVERY)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk, resolve_actor(request.user))
        return Response({"success": True, "order": OrderSerializer(order).data})

    # ------------------------------------------------------------------
    # Lifecycle commands
    # ------------------------------------------------------------------

    @action(detail=True, methods=["put"], url_path="status")
    def update_status(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/status/"""
        actor = resolve_actor(request.user)
        serializer = StatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        dto = TransitionRequestDTO(**serializer.validated_data)

        result = self._service.transition(
            pk,
            dto.status,
            actor,
            expected_status=dto.expected_status,
            reason=dto.reason,
            notes=dto.notes,
        )
        return Response(
            {
                "success": True,
                "message": "Order status updated successfully",
                "order": OrderSerializer(result.order).data,
                "side_effects": [str(effect) for effect in result.side_effects],
            }
        )

    @action(detail=True, methods=["put"], url_path="accept-delivery")
    def accept_delivery(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/accept-delivery/"""
        result = self._service.accept_delivery(pk, resolve_actor(request.user))
        return Response(
            {
                "success": True,
                "message": "Delivery accepted successfully",
                "order": OrderSerializer(result.order).data,
            }
        )

    @action(detail=True, methods=["put"])
    def rate(self, request: Request, pk: str | None = None) -> Response:
        """PUT /api/v1/orders/{pk}/rate/"""
        actor = resolve_actor(request.user)
        serializer = RateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = self._service.rate_order(
            pk, actor, RateOrderDTO(**serializer.validated_data)
        )
        return Response(
            {
                "success": True,
                "message": "Rating submitted successfully",
                "order": OrderSerializer(order).data,
            }
        )
