"""Orders app models.

An Order is created once at checkout (or by staff for walk-in sales) and is
only ever moved through ``orders.services``; it is never deleted. Items keep
denormalized copies of product name, color and size so history stays
displayable after catalog edits.
"""

from decimal import Decimal

from common.choices import (
    CanceledBy,
    DiscountType,
    FulfillmentMethod,
    ItemRefundStatus,
    OrderEventType,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    Warehouse,
)
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Coupon(TimeStampedModel):
    """Discount code applied to a cart and redeemed by an order."""

    code = models.CharField(max_length=32, unique=True)
    description = models.CharField(max_length=255, blank=True)
    discount_type = models.CharField(max_length=16, choices=DiscountType.choices)
    discount_value = models.DecimalField(max_digits=12, decimal_places=2)
    min_purchase = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    max_discount = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["code"]
        constraints = [
            models.CheckConstraint(name="coupon_value_non_negative", check=models.Q(discount_value__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or "").strip().upper()
        super().save(*args, **kwargs)


class Order(TimeStampedModel):
    """Purchase order with denormalized totals.

    ``total = subtotal - coupon_discount + delivery_fee``; for reservation
    orders ``reservation_fee = total * reservation_percentage / 100``.
    """

    number = models.CharField(max_length=32, unique=True, null=True, blank=True, db_index=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="orders", on_delete=models.PROTECT
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    is_manual_order = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=OrderStatus.choices, default=OrderStatus.PENDING, db_index=True)
    # Status held before entering refund-requested.
    previous_status = models.CharField(max_length=20, choices=OrderStatus.choices, blank=True)
    canceled_by = models.CharField(max_length=16, choices=CanceledBy.choices, blank=True)
    cancel_reason = models.TextField(blank=True)

    fulfillment = models.CharField(max_length=16, choices=FulfillmentMethod.choices, default=FulfillmentMethod.PICKUP)
    shipping_address = models.JSONField(null=True, blank=True)
    pickup_details = models.JSONField(null=True, blank=True)

    payment_method = models.CharField(max_length=16, choices=PaymentMethod.choices, default=PaymentMethod.CASH)
    payment_reference = models.CharField(max_length=128, blank=True)
    payment_proof = models.URLField(blank=True)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.PENDING)
    payment_verified_at = models.DateTimeField(null=True, blank=True)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )

    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    coupon = models.ForeignKey(Coupon, null=True, blank=True, related_name="orders", on_delete=models.SET_NULL)
    coupon_code = models.CharField(max_length=32, blank=True)
    coupon_discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    delivery_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    is_reservation = models.BooleanField(default=False)
    reservation_percentage = models.PositiveSmallIntegerField(null=True, blank=True)
    reservation_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["user", "status", "created_at"]),
        ]
        constraints = [
            models.CheckConstraint(name="order_total_non_negative", check=models.Q(total__gte=0)),
            models.CheckConstraint(name="order_delivery_fee_non_negative", check=models.Q(delivery_fee__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} {self.number} status={self.status}"

    @property
    def entry_status(self) -> str:
        return OrderStatus.RESERVED if self.is_reservation else OrderStatus.PENDING

    @property
    def is_refunded(self) -> bool:
        """Refunds are an overlay: presence of RefundDetails, not a rewritten status."""
        return self.status == OrderStatus.REFUNDED or hasattr(self, "refund")

    @property
    def display_status(self) -> str:
        if self.is_refunded:
            return OrderStatus.REFUNDED
        return self.status


class OrderItem(TimeStampedModel):
    """Line of an order fulfilled from one warehouse.

    A cart line split across warehouses becomes one item per warehouse.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)
    variant = models.ForeignKey("catalog.ProductVariant", related_name="order_items", on_delete=models.PROTECT)
    product_name = models.CharField(max_length=200, blank=True)
    variant_code = models.CharField(max_length=120, blank=True)
    color = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=60, blank=True)
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=12, decimal_places=2)
    warehouse_source = models.CharField(max_length=32, choices=Warehouse.choices)
    reservation = models.ForeignKey(
        "inventory.StockReservation", null=True, blank=True, related_name="order_items", on_delete=models.SET_NULL
    )
    refund_requested = models.BooleanField(default=False)
    refund_status = models.CharField(max_length=16, choices=ItemRefundStatus.choices, default=ItemRefundStatus.NONE)
    refund_reason = models.TextField(blank=True)
    refund_proof = models.URLField(blank=True)

    class Meta:
        ordering = ["id"]
        indexes = [
            models.Index(fields=["order", "variant"]),
        ]
        constraints = [
            models.CheckConstraint(name="orderitem_quantity_positive", check=models.Q(quantity__gte=1)),
            models.CheckConstraint(name="orderitem_price_non_negative", check=models.Q(unit_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} variant={self.variant_code} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))


class RefundDetails(models.Model):
    """Write-once refund record. Empty ``items_refunded`` means a full refund."""

    order = models.OneToOneField(Order, related_name="refund", on_delete=models.CASCADE)
    refund_amount = models.DecimalField(max_digits=12, decimal_places=2)
    refund_method = models.CharField(max_length=32)
    refund_reason = models.TextField()
    refund_proof = models.URLField(blank=True)
    admin_notes = models.TextField(blank=True)
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL
    )
    processed_by_name = models.CharField(max_length=150, blank=True)
    processed_at = models.DateTimeField()
    items_refunded = models.JSONField(default=list, blank=True)

    class Meta:
        constraints = [
            models.CheckConstraint(name="refund_amount_positive", check=models.Q(refund_amount__gt=0)),
        ]

    @property
    def is_full(self) -> bool:
        return not self.items_refunded


class OrderEvent(models.Model):
    """Append-only audit trail of order mutations."""

    order = models.ForeignKey(Order, related_name="events", on_delete=models.CASCADE)
    event = models.CharField(max_length=32, choices=OrderEventType.choices)
    status_from = models.CharField(max_length=20, blank=True)
    status_to = models.CharField(max_length=20, blank=True)
    actor = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, related_name="+", on_delete=models.SET_NULL)
    role = models.CharField(max_length=32, blank=True)
    notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]


class IdempotencyKey(TimeStampedModel):
    """Stores idempotent request results to prevent duplicate processing."""

    key = models.CharField(max_length=128)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE)
    scope = models.CharField(max_length=128)
    path = models.CharField(max_length=255)
    method = models.CharField(max_length=16)
    request_hash = models.CharField(max_length=64, null=True, blank=True)
    response_code = models.IntegerField(null=True, blank=True)
    response_json = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["key", "scope", "path", "method"], name="uniq_idem_scope_path_method"),
        ]
