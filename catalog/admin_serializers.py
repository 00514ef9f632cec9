"""Input serializers for catalog write endpoints.

They only shape and type-check the payload; taxonomy resolution and
business rules live in ``catalog.services``.
"""

from common.choices import ProductCategory
from rest_framework import serializers


class VariantInputSerializer(serializers.Serializer):
    size = serializers.CharField(max_length=60, required=False, allow_null=True, allow_blank=True)
    color = serializers.CharField(max_length=120)
    price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    dimensions = serializers.JSONField(required=False, allow_null=True)
    sort_order = serializers.IntegerField(required=False)


class MediaInputSerializer(serializers.Serializer):
    url = serializers.URLField()
    alt_text = serializers.CharField(max_length=200, required=False, allow_blank=True)
    is_primary = serializers.BooleanField(required=False)
    sort_order = serializers.IntegerField(required=False)


class ProductWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    description = serializers.CharField(required=False, allow_blank=True)
    base_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0, required=False)
    category = serializers.ChoiceField(choices=ProductCategory.choices)
    sub_category = serializers.CharField(required=False, allow_null=True)
    material = serializers.CharField(required=False, allow_null=True)
    dimensions = serializers.JSONField(required=False, allow_null=True)
    is_featured = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)
    variants = VariantInputSerializer(many=True, required=False)
    media = MediaInputSerializer(many=True, required=False)
