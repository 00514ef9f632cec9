"""Admin registration for catalog models."""

from django.contrib import admin

from .models import Media, Product, ProductVariant


class MediaInline(admin.TabularInline):
    model = Media
    extra = 0


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    fields = ("code", "size", "color", "price", "is_active", "sort_order")
    readonly_fields = ("code",)


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "slug", "category", "base_price", "is_active", "is_featured")
    search_fields = ("name", "slug")
    list_filter = ("category", "is_active", "is_featured", "material")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ProductVariantInline, MediaInline]


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ("product", "code", "size", "color", "price", "is_active")
    search_fields = ("code", "product__name")
    list_filter = ("is_active",)
