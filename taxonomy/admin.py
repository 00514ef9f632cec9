"""Admin registration for taxonomy models."""

from django.contrib import admin

from .models import Color, MainCategory, Material, SubCategory


class TaxonomyAdmin(admin.ModelAdmin):
    list_display = ("name", "is_active", "updated_at")
    search_fields = ("name",)
    list_filter = ("is_active",)

    def has_delete_permission(self, request, obj=None):
        # Soft delete only; historical products reference these entries
        return False


@admin.register(MainCategory)
class MainCategoryAdmin(TaxonomyAdmin):
    list_display = ("name", "display_name", "is_active", "updated_at")


@admin.register(SubCategory)
class SubCategoryAdmin(TaxonomyAdmin):
    list_display = ("name", "main_category", "is_active", "updated_at")
    list_filter = ("is_active", "main_category")


@admin.register(Material)
class MaterialAdmin(TaxonomyAdmin):
    pass


@admin.register(Color)
class ColorAdmin(TaxonomyAdmin):
    list_display = ("name", "hex_code", "is_active", "updated_at")
