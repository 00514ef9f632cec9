from django.contrib import admin

from .models import Coupon, IdempotencyKey, Order, OrderEvent, OrderItem, RefundDetails


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    readonly_fields = (
        "product_name",
        "variant_code",
        "color",
        "size",
        "quantity",
        "unit_price",
        "warehouse_source",
        "reservation",
        "refund_status",
    )
    exclude = ("product", "variant")


class OrderEventInline(admin.TabularInline):
    model = OrderEvent
    extra = 0
    can_delete = False
    readonly_fields = ("event", "status_from", "status_to", "actor", "role", "notes", "created_at")


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "number", "status", "user", "is_manual_order", "total", "payment_status", "created_at")
    list_filter = ("status", "payment_status", "is_reservation", "is_manual_order", "created_at")
    search_fields = ("number", "user__email", "payment_reference")
    date_hierarchy = "created_at"
    inlines = [OrderItemInline, OrderEventInline]
    # Status moves go through the API so reservations stay in step.
    readonly_fields = ("status", "previous_status", "subtotal", "coupon_discount", "total", "reservation_fee")

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(RefundDetails)
class RefundDetailsAdmin(admin.ModelAdmin):
    list_display = ("order", "refund_amount", "refund_method", "processed_by_name", "processed_at")
    search_fields = ("order__number",)

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("code", "discount_type", "discount_value", "used_count", "usage_limit", "expires_at", "is_active")
    list_filter = ("discount_type", "is_active")
    search_fields = ("code", "description")
    readonly_fields = ("used_count",)


@admin.register(IdempotencyKey)
class IdempotencyKeyAdmin(admin.ModelAdmin):
    list_display = ("id", "key", "scope", "path", "method", "response_code", "created_at")
    list_filter = ("method", "response_code", "created_at")
    search_fields = ("key", "scope", "path")
    date_hierarchy = "created_at"
