"""Inventory models (multi-warehouse).

Stock is tracked per variant and per warehouse. ``StockItem`` rows are the
source of truth for availability; ``InventoryBatch`` rows are an append-only
provenance log of manual adjustments; ``StockReservation`` rows record every
checkout-time hold so it can later be released or committed exactly once.
"""

from common.choices import ReservationState, Warehouse
from django.db import models


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class StockItem(TimeStampedModel):
    variant = models.ForeignKey("catalog.ProductVariant", related_name="stock", on_delete=models.CASCADE)
    warehouse = models.CharField(max_length=32, choices=Warehouse.choices)
    quantity = models.IntegerField(default=0)
    reserved = models.IntegerField(default=0)

    class Meta:
        ordering = ["variant_id", "warehouse"]
        constraints = [
            models.CheckConstraint(name="stock_non_negative", check=models.Q(quantity__gte=0)),
            models.CheckConstraint(name="reserved_non_negative", check=models.Q(reserved__gte=0)),
            models.CheckConstraint(
                name="reserved_le_quantity",
                check=models.Q(reserved__lte=models.F("quantity")),
            ),
            models.UniqueConstraint(fields=["variant", "warehouse"], name="unique_stock_per_variant_warehouse"),
        ]
        indexes = [
            models.Index(fields=["variant", "warehouse"]),
        ]

    @property
    def available(self) -> int:
        return int(self.quantity) - int(self.reserved)

    def __str__(self) -> str:  # pragma: no cover
        return f"StockItem<{self.variant_id}@{self.warehouse}> q={self.quantity} r={self.reserved}"


class InventoryBatch(TimeStampedModel):
    """One manual stock adjustment; informational, never read for availability."""

    stock_item = models.ForeignKey(StockItem, on_delete=models.CASCADE, related_name="batches")
    batch_id = models.CharField(max_length=40, unique=True)
    received_at = models.DateTimeField()
    quantity = models.IntegerField()  # signed delta: +added, -removed
    reserved = models.IntegerField(default=0)
    notes = models.CharField(max_length=200, blank=True)
    created_by = models.ForeignKey("users.User", null=True, blank=True, on_delete=models.SET_NULL)

    class Meta:
        ordering = ["received_at", "id"]
        constraints = [
            models.CheckConstraint(name="batch_non_zero", check=~models.Q(quantity=0)),
            models.CheckConstraint(name="batch_reserved_non_negative", check=models.Q(reserved__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.batch_id} {self.quantity:+d} for {self.stock_item_id}"


class StockReservation(TimeStampedModel):
    STATE_ACTIVE = ReservationState.ACTIVE
    STATE_RELEASED = ReservationState.RELEASED
    STATE_COMMITTED = ReservationState.COMMITTED
    STATE_CHOICES = ReservationState.choices

    variant = models.ForeignKey("catalog.ProductVariant", on_delete=models.CASCADE)
    warehouse = models.CharField(max_length=32, choices=Warehouse.choices)
    quantity = models.IntegerField()
    reference = models.CharField(max_length=120, blank=True)
    state = models.CharField(max_length=16, choices=STATE_CHOICES, default=STATE_ACTIVE)

    class Meta:
        ordering = ["-created_at", "id"]
        constraints = [
            models.CheckConstraint(name="reservation_positive_qty", check=models.Q(quantity__gt=0)),
        ]
        indexes = [
            models.Index(fields=["variant", "warehouse"]),
            models.Index(fields=["reference"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Reservation<{self.variant_id}@{self.warehouse}> qty={self.quantity} state={self.state}"


# EOF
