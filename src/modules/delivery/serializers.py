from __future__ import annotations

from rest_framework import serializers

from modules.delivery.models import DeliveryPartner


class LocationSerializer(serializers.Serializer):
    latitude = serializers.DecimalField(max_digits=9, decimal_places=6)
    longitude = serializers.DecimalField(max_digits=9, decimal_places=6)


class DeliveryPartnerStatusSerializer(serializers.ModelSerializer):
    class Meta:
        model = DeliveryPartner
        fields = [
            "id",
            "name",
            "status",
            "is_online",
            "last_online_at",
            "latitude",
            "longitude",
            "location_updated_at",
            "total_deliveries",
            "total_earnings",
            "rating_average",
            "rating_count",
        ]
        read_only_fields = fields
