"""Catalog app models.

Defines furniture products, their size/color variants, and product imagery.
Products and variants are soft-deleted through ``is_active``; orders keep
denormalized copies of name/price/color so history stays displayable.
"""

from decimal import Decimal

from common.choices import ProductCategory
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Core product entity."""

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    description = models.TextField(blank=True)
    base_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    category = models.CharField(max_length=16, choices=ProductCategory.choices, db_index=True)
    sub_category = models.ForeignKey(
        "taxonomy.SubCategory", null=True, blank=True, related_name="products", on_delete=models.PROTECT
    )
    material = models.ForeignKey(
        "taxonomy.Material", null=True, blank=True, related_name="products", on_delete=models.PROTECT
    )
    # {"width": .., "depth": .., "height": .., "unit": "cm"}
    dimensions = models.JSONField(null=True, blank=True)
    is_active = models.BooleanField(default=True, db_index=True)
    is_featured = models.BooleanField(default=False, db_index=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(name="product_base_price_non_negative", check=models.Q(base_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.name

    def _active_prices(self):
        variants = getattr(self, "_prefetched_objects_cache", {}).get("variants")
        items = list(variants) if variants is not None else list(self.variants.all())
        return [v.price for v in items if v.is_active]

    @property
    def display_price(self) -> Decimal:
        """Lowest active variant price, falling back to the base price."""
        prices = self._active_prices()
        return min(prices) if prices else self.base_price

    @property
    def max_price(self) -> Decimal:
        prices = self._active_prices()
        return max(prices) if prices else self.base_price

    @property
    def has_multiple_prices(self) -> bool:
        return len(set(self._active_prices())) > 1


class ProductVariant(TimeStampedModel):
    """Sellable size/color combination of a product.

    ``code`` is derived from (size, color) so re-adding a deactivated
    combination lands on the same row.
    """

    product = models.ForeignKey(Product, related_name="variants", on_delete=models.CASCADE)
    code = models.CharField(max_length=120)
    size = models.CharField(max_length=60, null=True, blank=True)
    color = models.ForeignKey("taxonomy.Color", related_name="variants", on_delete=models.PROTECT)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    dimensions = models.JSONField(null=True, blank=True)
    is_active = models.BooleanField(default=True)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.CheckConstraint(name="variant_price_non_negative", check=models.Q(price__gte=0)),
            models.UniqueConstraint(fields=["product", "code"], name="unique_variant_code_per_product"),
        ]
        indexes = [
            models.Index(fields=["product", "is_active"]),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product.name} [{self.code}]"


class Media(TimeStampedModel):
    """Product imagery (URL references; uploads live outside this service)."""

    product = models.ForeignKey(Product, related_name="media", on_delete=models.CASCADE)
    url = models.URLField()
    alt_text = models.CharField(max_length=200, blank=True)
    is_primary = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product"],
                condition=models.Q(is_primary=True),
                name="unique_primary_media_per_product",
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return self.url
