"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.orders.constants import OrderStatus, OrderType, PaymentMethod
from modules.orders.models import Order, OrderItem, OrderRating, OrderStatusHistory

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CustomizationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    selected_option = serializers.CharField(max_length=100)
    additional_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, required=False, default="0.00"
    )


class PlaceOrderItemSerializer(serializers.Serializer):
    """Validates a single cart line of an order placement request."""

    menu_item_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)
    customizations = CustomizationSerializer(many=True, required=False, default=list)
    special_instructions = serializers.CharField(
        required=False, default="", allow_blank=True
    )


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the order placement request payload."""

    vendor_id = serializers.UUIDField()
    order_type = serializers.ChoiceField(
        choices=OrderType.choices, required=False, default=OrderType.DELIVERY
    )
    items = PlaceOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False, default=PaymentMethod.COD
    )
    delivery_address = serializers.DictField(required=False, default=dict)
    special_instructions = serializers.DictField(
        child=serializers.CharField(allow_blank=True), required=False, default=dict
    )


class StatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    expected_status = serializers.ChoiceField(
        choices=OrderStatus.choices, required=False, allow_null=True, default=None
    )
    reason = serializers.CharField(required=False, default="", allow_blank=True)
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class RateOrderSerializer(serializers.Serializer):
    overall = serializers.IntegerField(min_value=1, max_value=5)
    food = serializers.IntegerField(
        min_value=1, max_value=5, required=False, allow_null=True, default=None
    )
    delivery = serializers.IntegerField(
        min_value=1, max_value=5, required=False, allow_null=True, default=None
    )
    review = serializers.CharField(required=False, default="", allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order lines (name/price snapshot)."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "menu_item_id",
            "name",
            "unit_price",
            "quantity",
            "customizations",
            "special_instructions",
            "line_total",
        ]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "status",
            "actor_role",
            "actor_id",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderRatingSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderRating
        fields = ["overall", "food", "delivery", "review", "rated_at"]
        read_only_fields = fields


class PricingSerializer(serializers.Serializer):
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    delivery_fee = serializers.DecimalField(max_digits=12, decimal_places=2)
    cgst = serializers.DecimalField(max_digits=12, decimal_places=2, source="tax_cgst")
    sgst = serializers.DecimalField(max_digits=12, decimal_places=2, source="tax_sgst")
    igst = serializers.DecimalField(max_digits=12, decimal_places=2, source="tax_igst")
    tax_total = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)


class PaymentSerializer(serializers.Serializer):
    method = serializers.CharField(source="payment_method")
    provider = serializers.CharField(source="payment_provider")
    gateway_order_id = serializers.CharField(source="payment_gateway_order_id")
    transaction_id = serializers.CharField(source="payment_transaction_id")
    status = serializers.CharField(source="payment_status")
    paid_amount = serializers.DecimalField(max_digits=12, decimal_places=2)


class CancellationSerializer(serializers.Serializer):
    reason = serializers.CharField(source="cancellation_reason")
    cancelled_by = serializers.CharField()
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    refund_status = serializers.CharField()


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, history and rating."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    pricing = PricingSerializer(source="*", read_only=True)
    payment = PaymentSerializer(source="*", read_only=True)
    cancellation = serializers.SerializerMethodField()
    rating = serializers.SerializerMethodField()
    vendor_name = serializers.CharField(source="vendor.shop_name", read_only=True)
    customer_name = serializers.CharField(source="customer.name", read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "customer_name",
            "vendor_id",
            "vendor_name",
            "delivery_partner_id",
            "order_type",
            "status",
            "version",
            "pricing",
            "payment",
            "delivery_address",
            "special_instructions",
            "placed_at",
            "confirmed_at",
            "accepted_at",
            "preparing_at",
            "ready_at",
            "picked_up_at",
            "out_for_delivery_at",
            "delivered_at",
            "cancelled_at",
            "refunded_at",
            "estimated_delivery_at",
            "assigned_at",
            "cancellation",
            "rating",
            "items",
            "status_history",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_cancellation(self, obj: Order):
        if not obj.cancelled_by:
            return None
        return CancellationSerializer(obj).data

    def get_rating(self, obj: Order):
        rating = getattr(obj, "rating", None)
        return OrderRatingSerializer(rating).data if rating else None


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order lists (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "customer_id",
            "vendor_id",
            "delivery_partner_id",
            "order_type",
            "status",
            "total",
            "payment_status",
            "placed_at",
            "created_at",
        ]
        read_only_fields = fields
