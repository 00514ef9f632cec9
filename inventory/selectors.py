"""Selectors for inventory domain (multi-warehouse)."""

from typing import Dict, Iterable, Optional

from django.db.models import F, QuerySet, Sum
from django.db.models.functions import Coalesce

from .models import InventoryBatch, StockItem, StockReservation


def get_available(variant_id: int, warehouse: Optional[str] = None) -> int:
    """Sum of ``quantity - reserved`` across one or all warehouses."""

    qs = StockItem.objects.filter(variant_id=variant_id)
    if warehouse:
        qs = qs.filter(warehouse=warehouse)
    total = qs.aggregate(available=Coalesce(Sum(F("quantity") - F("reserved")), 0))["available"]
    return max(0, int(total))


def available_by_warehouse(variant_ids: Iterable[int]) -> Dict[int, Dict[str, int]]:
    """Return ``{variant_id: {warehouse: available}}`` for the given variants."""

    out: Dict[int, Dict[str, int]] = {}
    for row in StockItem.objects.filter(variant_id__in=list(variant_ids)).values(
        "variant_id", "warehouse", "quantity", "reserved"
    ):
        out.setdefault(row["variant_id"], {})[row["warehouse"]] = int(row["quantity"]) - int(row["reserved"])
    return out


def list_stock(
    *, product_id: Optional[int] = None, variant_id: Optional[int] = None, warehouse: Optional[str] = None
) -> QuerySet[StockItem]:
    qs = StockItem.objects.select_related("variant", "variant__product")
    if product_id:
        qs = qs.filter(variant__product_id=product_id)
    if variant_id:
        qs = qs.filter(variant_id=variant_id)
    if warehouse:
        qs = qs.filter(warehouse=warehouse)
    return qs.order_by("variant_id", "warehouse")


def list_batches(*, stock_item_id: Optional[int] = None) -> QuerySet[InventoryBatch]:
    """Batches in FIFO order (oldest received first)."""

    qs = InventoryBatch.objects.select_related("stock_item")
    if stock_item_id:
        qs = qs.filter(stock_item_id=stock_item_id)
    return qs.order_by("received_at", "id")


def list_active_reservations(*, reference: str) -> QuerySet[StockReservation]:
    return StockReservation.objects.filter(reference=reference, state=StockReservation.STATE_ACTIVE).order_by("id")


# EOF
