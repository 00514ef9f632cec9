"""Serializers for inventory domain.

Read-only serializers for stock rows, batches and reservations, plus the
input serializer for manual stock adjustments.
"""

from common.choices import Warehouse
from rest_framework import serializers

from .models import InventoryBatch, StockItem, StockReservation


class StockItemSerializer(serializers.ModelSerializer):
    """Stock for one variant at one warehouse, with computed ``available``."""

    variant_code = serializers.CharField(source="variant.code", read_only=True)
    product = serializers.IntegerField(source="variant.product_id", read_only=True)
    available = serializers.SerializerMethodField(read_only=True)

    class Meta:
        model = StockItem
        fields = [
            "id",
            "product",
            "variant",
            "variant_code",
            "warehouse",
            "quantity",
            "reserved",
            "available",
            "updated_at",
        ]
        read_only_fields = fields

    def get_available(self, obj) -> int:
        return obj.available


class InventoryBatchSerializer(serializers.ModelSerializer):
    warehouse = serializers.CharField(source="stock_item.warehouse", read_only=True)
    variant = serializers.IntegerField(source="stock_item.variant_id", read_only=True)

    class Meta:
        model = InventoryBatch
        fields = ["id", "batch_id", "variant", "warehouse", "received_at", "quantity", "reserved", "notes"]
        read_only_fields = fields


class StockReservationSerializer(serializers.ModelSerializer):
    class Meta:
        model = StockReservation
        fields = ["id", "variant", "warehouse", "quantity", "reference", "state", "created_at"]
        read_only_fields = fields


class StockAdjustSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    warehouse = serializers.ChoiceField(choices=Warehouse.choices)
    quantity = serializers.IntegerField(min_value=0)
    reserved = serializers.IntegerField(min_value=0, required=False)
    notes = serializers.CharField(max_length=200, required=False, allow_blank=True)

    def validate(self, attrs):
        reserved = attrs.get("reserved")
        if reserved is not None and reserved > attrs["quantity"]:
            raise serializers.ValidationError({"reserved": "Reserved cannot exceed quantity."})
        return attrs


# EOF
