"""Cart app models.

Carts belong to a user or to a guest ``session_id``. They are advisory: a
cart never holds stock. Each line snapshots the variant price at the time it
was added and is keyed by a deterministic ``line_key`` so repeated additions
merge into one line.
"""

from decimal import Decimal

from common.choices import CartStatus
from django.conf import settings
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to a user or a guest session."""

    STATUS_ACTIVE = CartStatus.ACTIVE
    STATUS_ORDERED = CartStatus.ORDERED
    STATUS_ABANDONED = CartStatus.ABANDONED
    STATUS_CHOICES = CartStatus.choices

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, related_name="carts", on_delete=models.CASCADE
    )
    session_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    coupon = models.ForeignKey("orders.Coupon", null=True, blank=True, related_name="+", on_delete=models.SET_NULL)

    class Meta:
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["user", "status"]),
            models.Index(fields=["session_id", "status"]),
        ]
        constraints = [
            models.CheckConstraint(
                name="cart_has_owner",
                check=models.Q(user__isnull=False) | models.Q(session_id__isnull=False),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.user_id or self.session_id})"


class CartItem(TimeStampedModel):
    """Line in a cart for one product variant."""

    cart = models.ForeignKey(Cart, related_name="items", on_delete=models.CASCADE)
    line_key = models.CharField(max_length=255)
    product = models.ForeignKey("catalog.Product", related_name="cart_items", on_delete=models.CASCADE)
    variant = models.ForeignKey("catalog.ProductVariant", related_name="cart_items", on_delete=models.CASCADE)
    color = models.CharField(max_length=100, blank=True)
    size = models.CharField(max_length=60, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "line_key"], name="unique_line_per_cart"),
            models.CheckConstraint(
                name="quantity_positive",
                check=models.Q(quantity__gte=1),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartItem#{self.id} cart={self.cart_id} line={self.line_key} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))
