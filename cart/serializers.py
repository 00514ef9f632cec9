"""Cart serializers for read and write operations."""

from orders.serializers import CheckoutDetailsSerializer
from rest_framework import serializers

from .models import CartItem
from .selectors import cart_totals


class CartItemReadSerializer(serializers.ModelSerializer):
    """Read serializer for a cart item; ``variant_id`` is the variant code."""

    variant_id = serializers.CharField(source="variant.code")
    product_name = serializers.CharField(source="product.name")
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = CartItem
        fields = [
            "id",
            "line_key",
            "product",
            "product_name",
            "variant_id",
            "color",
            "size",
            "quantity",
            "unit_price",
            "line_total",
        ]


class CartReadSerializer(serializers.Serializer):
    """Read serializer for the cart summary and items."""

    id = serializers.IntegerField()
    items = CartItemReadSerializer(many=True)
    item_count = serializers.IntegerField()
    coupon_code = serializers.CharField(allow_null=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2)
    discount = serializers.DecimalField(max_digits=12, decimal_places=2)
    total = serializers.DecimalField(max_digits=12, decimal_places=2)

    @classmethod
    def from_cart(cls, *, cart):
        totals = cart_totals(cart=cart)
        return cls(
            {
                "id": cart.id,
                "items": list(cart.items.select_related("variant", "product").all()),
                "item_count": totals["item_count"],
                "coupon_code": totals["coupon_code"],
                "subtotal": totals["subtotal"],
                "discount": totals["discount"],
                "total": totals["total"],
            }
        )


class AddItemSerializer(serializers.Serializer):
    """Either ``variant_id`` (variant code) or a (size, color) pair."""

    product_id = serializers.IntegerField()
    variant_id = serializers.CharField(required=False, allow_blank=True, max_length=160)
    color = serializers.CharField(required=False, allow_blank=True, max_length=100)
    size = serializers.CharField(required=False, allow_blank=True, max_length=60)
    quantity = serializers.IntegerField(min_value=1)

    def validate(self, attrs):
        if not attrs.get("variant_id") and not attrs.get("color"):
            raise serializers.ValidationError({"variant_id": "Provide variant_id or color/size."})
        return attrs


class UpdateItemQuantitySerializer(serializers.Serializer):
    # zero removes the line
    quantity = serializers.IntegerField(min_value=0)


class CouponSerializer(serializers.Serializer):
    code = serializers.CharField(max_length=40)


class MergeGuestSerializer(serializers.Serializer):
    session_id = serializers.CharField(max_length=64)


class CheckoutSerializer(CheckoutDetailsSerializer):
    pass
