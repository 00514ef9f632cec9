"""Admin registrations for inventory app.

Stock rows are read-only here; changes go through the adjustment endpoint so
every delta is logged as a batch.
"""

from django.contrib import admin

from .models import InventoryBatch, StockItem, StockReservation


class InventoryBatchInline(admin.TabularInline):
    model = InventoryBatch
    extra = 0
    can_delete = False
    readonly_fields = ("batch_id", "received_at", "quantity", "reserved", "notes", "created_by")


@admin.register(StockItem)
class StockItemAdmin(admin.ModelAdmin):
    list_display = ("id", "variant", "warehouse", "quantity", "reserved", "updated_at")
    list_filter = ("warehouse",)
    search_fields = ("variant__code", "variant__product__name")
    readonly_fields = ("quantity", "reserved")
    inlines = [InventoryBatchInline]


@admin.register(InventoryBatch)
class InventoryBatchAdmin(admin.ModelAdmin):
    list_display = ("batch_id", "stock_item", "quantity", "notes", "received_at")
    search_fields = ("batch_id", "notes")

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(StockReservation)
class StockReservationAdmin(admin.ModelAdmin):
    list_display = ("id", "variant", "warehouse", "quantity", "state", "reference", "created_at")
    list_filter = ("state", "warehouse")
    search_fields = ("variant__code", "reference")


# EOF
