"""DRF serializers for Orders.

Read serializers expose the stored, denormalized totals; write serializers
only validate shape and hand off to ``orders.services``.
"""

from decimal import Decimal

from common.choices import DiscountType, FulfillmentMethod, OrderStatus, PaymentMethod
from rest_framework import serializers

from .models import Coupon, Order, OrderEvent, OrderItem, RefundDetails


class OrderItemSerializer(serializers.ModelSerializer):
    """API representation of an order line item with computed line_total."""

    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product",
            "variant",
            "product_name",
            "variant_code",
            "color",
            "size",
            "quantity",
            "unit_price",
            "line_total",
            "warehouse_source",
            "refund_requested",
            "refund_status",
        ]
        read_only_fields = fields


class RefundDetailsSerializer(serializers.ModelSerializer):
    is_full = serializers.BooleanField(read_only=True)

    class Meta:
        model = RefundDetails
        fields = [
            "refund_amount",
            "refund_method",
            "refund_reason",
            "refund_proof",
            "admin_notes",
            "processed_by",
            "processed_by_name",
            "processed_at",
            "items_refunded",
            "is_full",
        ]


class OrderEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderEvent
        fields = ["event", "status_from", "status_to", "actor", "role", "notes", "created_at"]


class OrderSerializer(serializers.ModelSerializer):
    """API representation for an order.

    ``display_status`` reads ``refunded`` whenever RefundDetails exist, even
    though a completed order keeps ``status = completed``.
    """

    items = OrderItemSerializer(many=True, read_only=True)
    refund = serializers.SerializerMethodField()
    display_status = serializers.CharField(read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "number",
            "user",
            "status",
            "display_status",
            "canceled_by",
            "is_manual_order",
            "fulfillment",
            "shipping_address",
            "pickup_details",
            "payment_method",
            "payment_reference",
            "payment_status",
            "subtotal",
            "coupon_code",
            "coupon_discount",
            "delivery_fee",
            "total",
            "is_reservation",
            "reservation_percentage",
            "reservation_fee",
            "notes",
            "items",
            "refund",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_refund(self, obj: Order):
        refund = getattr(obj, "refund", None)
        return RefundDetailsSerializer(refund).data if refund else None


class OrderDetailSerializer(OrderSerializer):
    events = OrderEventSerializer(many=True, read_only=True)

    class Meta(OrderSerializer.Meta):
        fields = OrderSerializer.Meta.fields + ["events", "cancel_reason", "payment_verified_at", "verified_by"]
        read_only_fields = fields


class CheckoutDetailsSerializer(serializers.Serializer):
    """Fulfillment and payment details shared by checkout and manual orders."""

    fulfillment = serializers.ChoiceField(choices=FulfillmentMethod.choices, default=FulfillmentMethod.PICKUP)
    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_reference = serializers.CharField(required=False, allow_blank=True, max_length=128)
    payment_proof = serializers.URLField(required=False, allow_blank=True)
    shipping_address = serializers.JSONField(required=False)
    pickup_details = serializers.JSONField(required=False)
    delivery_fee = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), default=Decimal("0"))
    reservation_percentage = serializers.IntegerField(required=False, min_value=1, max_value=100)
    notes = serializers.CharField(required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get("fulfillment") == FulfillmentMethod.DELIVERY and not attrs.get("shipping_address"):
            raise serializers.ValidationError({"shipping_address": "Required for delivery orders."})
        return attrs


class ManualOrderLineSerializer(serializers.Serializer):
    variant_id = serializers.IntegerField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal("0"), required=False)


class ManualOrderSerializer(CheckoutDetailsSerializer):
    user_id = serializers.IntegerField(required=False, allow_null=True)
    coupon_code = serializers.CharField(required=False, allow_blank=True)
    items = ManualOrderLineSerializer(many=True, allow_empty=False)


class TransitionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=OrderStatus.choices)
    notes = serializers.CharField(required=False, allow_blank=True)


class CancelSerializer(serializers.Serializer):
    reason = serializers.CharField(required=False, allow_blank=True)


class RefundRequestSerializer(serializers.Serializer):
    items = serializers.ListField(child=serializers.IntegerField(min_value=0), allow_empty=False)
    reason = serializers.CharField()
    proof = serializers.URLField(required=False, allow_blank=True)


class RefundSerializer(serializers.Serializer):
    refund_method = serializers.CharField(max_length=32)
    refund_amount = serializers.DecimalField(max_digits=12, decimal_places=2)
    refund_reason = serializers.CharField()
    refund_proof = serializers.URLField(required=False, allow_blank=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True)
    items_refunded = serializers.ListField(child=serializers.IntegerField(min_value=0), required=False)


class VerifyPaymentSerializer(serializers.Serializer):
    approved = serializers.BooleanField(default=True)
    notes = serializers.CharField(required=False, allow_blank=True)


class CouponSerializer(serializers.ModelSerializer):
    class Meta:
        model = Coupon
        fields = [
            "id",
            "code",
            "description",
            "discount_type",
            "discount_value",
            "min_purchase",
            "max_discount",
            "expires_at",
            "usage_limit",
            "used_count",
            "is_active",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class CouponWriteSerializer(serializers.Serializer):
    """Shape check for coupon create/patch; uniqueness and ranges live in the service."""

    code = serializers.CharField(max_length=32)
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    discount_type = serializers.ChoiceField(choices=DiscountType.choices)
    discount_value = serializers.DecimalField(max_digits=12, decimal_places=2)
    min_purchase = serializers.DecimalField(max_digits=12, decimal_places=2, required=False)
    max_discount = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)
    usage_limit = serializers.IntegerField(min_value=1, required=False, allow_null=True)
