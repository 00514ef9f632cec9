"""Serializers for the catalog app (public reads)."""

from rest_framework import serializers

from .models import Media, Product, ProductVariant


class MediaSerializer(serializers.ModelSerializer):
    class Meta:
        model = Media
        fields = ["id", "url", "alt_text", "is_primary", "sort_order"]


class ProductVariantSerializer(serializers.ModelSerializer):
    color = serializers.CharField(source="color.name", read_only=True)
    hex_code = serializers.CharField(source="color.hex_code", read_only=True)
    available = serializers.IntegerField(read_only=True, default=0)

    class Meta:
        model = ProductVariant
        fields = ["id", "code", "size", "color", "hex_code", "price", "dimensions", "is_active", "available"]


class ProductListSerializer(serializers.ModelSerializer):
    display_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    max_price = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    has_multiple_prices = serializers.BooleanField(read_only=True)
    primary_media_url = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = [
            "id",
            "name",
            "slug",
            "category",
            "display_price",
            "max_price",
            "has_multiple_prices",
            "is_featured",
            "primary_media_url",
        ]

    def get_primary_media_url(self, obj):
        media = getattr(obj, "_prefetched_objects_cache", {}).get("media")
        items = list(media) if media is not None else list(obj.media.all())
        primary = next((m for m in items if m.is_primary), None)
        return primary.url if primary else None


class ProductDetailSerializer(ProductListSerializer):
    sub_category = serializers.CharField(source="sub_category.name", default=None, read_only=True)
    material = serializers.CharField(source="material.name", default=None, read_only=True)
    variants = ProductVariantSerializer(many=True, read_only=True)
    media = MediaSerializer(many=True, read_only=True)

    class Meta(ProductListSerializer.Meta):
        fields = ProductListSerializer.Meta.fields + [
            "description",
            "base_price",
            "sub_category",
            "material",
            "dimensions",
            "is_active",
            "variants",
            "media",
        ]
