"""Admin registration for cart models.

Carts hold no stock, so support actions here only tidy cart state; they
never touch the inventory ledger.
"""

from common.errors import CoreError
from django.contrib import admin, messages

from .models import Cart, CartItem
from .services import abandon_cart, clear_cart


def _owner(cart: Cart) -> dict:
    if cart.user_id:
        return {"user": cart.user}
    return {"session_id": cart.session_id or ""}


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    fields = ("line_key", "product", "variant", "quantity", "unit_price", "created_at", "updated_at")
    readonly_fields = ("line_key", "unit_price", "created_at", "updated_at")
    raw_id_fields = ("product", "variant")


class OwnerTypeFilter(admin.SimpleListFilter):
    title = "owner type"
    parameter_name = "owner_type"

    def lookups(self, request, model_admin):
        return (
            ("user", "User carts"),
            ("guest", "Guest carts"),
        )

    def queryset(self, request, queryset):
        value = self.value()
        if value == "user":
            return queryset.filter(user__isnull=False)
        if value == "guest":
            return queryset.filter(user__isnull=True)
        return queryset


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "session_id", "status", "coupon", "updated_at", "created_at")
    list_filter = ("status", OwnerTypeFilter)
    search_fields = ("session_id", "user__username", "user__email")
    ordering = ("-updated_at",)
    readonly_fields = ("created_at", "updated_at")
    inlines = [CartItemInline]
    autocomplete_fields = ("user",)
    list_select_related = ("user", "coupon")
    actions = ["action_clear_cart", "action_abandon_cart"]

    def _run(self, request, queryset, fn, label: str):
        done = 0
        failed = 0
        for cart in queryset.filter(status=Cart.STATUS_ACTIVE):
            try:
                fn(**_owner(cart))
                done += 1
            except CoreError:
                failed += 1
        if done:
            messages.success(request, f"{label} {done} cart(s).")
        if failed:
            messages.error(request, f"Failed on {failed} cart(s).")

    @admin.action(description="Clear cart (remove lines and coupon, keep active)")
    def action_clear_cart(self, request, queryset):
        self._run(request, queryset, clear_cart, "Cleared")

    @admin.action(description="Abandon cart")
    def action_abandon_cart(self, request, queryset):
        self._run(request, queryset, abandon_cart, "Abandoned")


@admin.register(CartItem)
class CartItemAdmin(admin.ModelAdmin):
    list_display = ("id", "cart", "line_key", "variant", "quantity", "unit_price", "updated_at")
    search_fields = ("line_key", "variant__code", "cart__user__email", "cart__session_id")
    ordering = ("id",)
    readonly_fields = ("created_at", "updated_at")
    raw_id_fields = ("cart", "product", "variant")


# EOF
