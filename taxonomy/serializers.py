"""Serializers for taxonomy entries."""

from rest_framework import serializers

from .models import Color, MainCategory, Material, SubCategory

BASE_FIELDS = ["id", "name", "description", "is_active", "created_at", "updated_at"]


class MainCategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = MainCategory
        fields = BASE_FIELDS + ["display_name"]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


class SubCategorySerializer(serializers.ModelSerializer):
    main_category = serializers.PrimaryKeyRelatedField(queryset=MainCategory.objects.all())

    class Meta:
        model = SubCategory
        fields = BASE_FIELDS + ["main_category"]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


class MaterialSerializer(serializers.ModelSerializer):
    class Meta:
        model = Material
        fields = BASE_FIELDS
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


class ColorSerializer(serializers.ModelSerializer):
    hex_code = serializers.RegexField(r"^#[0-9A-Fa-f]{6}$", required=False, allow_blank=True)

    class Meta:
        model = Color
        fields = BASE_FIELDS + ["hex_code"]
        read_only_fields = ["id", "is_active", "created_at", "updated_at"]


SERIALIZERS = {
    "main-categories": MainCategorySerializer,
    "sub-categories": SubCategorySerializer,
    "materials": MaterialSerializer,
    "colors": ColorSerializer,
}
