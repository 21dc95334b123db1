from __future__ import annotations

from rest_framework import serializers


class OrderReferenceSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()


class ConfirmUpiSerializer(OrderReferenceSerializer):
    confirmed = serializers.BooleanField()


class RefundSerializer(OrderReferenceSerializer):
    reason = serializers.CharField(required=False, default="", allow_blank=True)


class PaymentIntentSerializer(serializers.Serializer):
    """Read serializer for a freshly created gateway payment."""

    id = serializers.CharField()
    client_secret = serializers.CharField()
    amount = serializers.IntegerField()
    currency = serializers.CharField()
