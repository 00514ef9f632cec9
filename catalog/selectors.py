"""Selectors for the catalog domain.

Expose read-only query helpers to keep views thin and allow reuse across
APIs and services. Selectors should return querysets or lightweight data
structures and avoid side effects.
"""

from typing import Iterable, Optional

from django.db.models import IntegerField, OuterRef, Prefetch, Q, QuerySet, Subquery, Sum
from django.db.models.functions import Coalesce
from inventory.models import StockItem

from .models import Media, Product, ProductVariant


def _available_subquery():
    """Total ``quantity - reserved`` across warehouses for the outer variant."""

    per_variant = (
        StockItem.objects.filter(variant_id=OuterRef("pk"))
        .order_by()
        .values("variant_id")
        .annotate(total=Sum("quantity") - Sum("reserved"))
        .values("total")
    )
    return Coalesce(Subquery(per_variant, output_field=IntegerField()), 0)


def variants_with_availability(*, include_inactive: bool = False) -> QuerySet[ProductVariant]:
    qs = ProductVariant.objects.select_related("color").annotate(available=_available_subquery())
    if not include_inactive:
        qs = qs.filter(is_active=True)
    return qs.order_by("sort_order", "id")


def list_products(
    *,
    category: Optional[str] = None,
    sub_category_id: Optional[int] = None,
    material_id: Optional[int] = None,
    color_id: Optional[int] = None,
    featured: Optional[bool] = None,
    search: Optional[str] = None,
    include_inactive: bool = False,
    ordering: Optional[Iterable[str]] = None,
) -> QuerySet[Product]:
    """Return products with common filters and optimized prefetching.

    Prefetches primary media and active variants (with availability) to
    avoid N+1 when computing display prices.
    """

    qs = Product.objects.select_related("sub_category", "material").prefetch_related(
        Prefetch("media", queryset=Media.objects.filter(is_primary=True)),
        Prefetch("variants", queryset=variants_with_availability(include_inactive=include_inactive)),
    )
    if not include_inactive:
        qs = qs.filter(is_active=True)
    if category:
        qs = qs.filter(category=category)
    if sub_category_id:
        qs = qs.filter(sub_category_id=sub_category_id)
    if material_id:
        qs = qs.filter(material_id=material_id)
    if color_id:
        qs = qs.filter(variants__color_id=color_id, variants__is_active=True)
    if featured is not None:
        qs = qs.filter(is_featured=featured)
    if search:
        qs = qs.filter(Q(name__icontains=search) | Q(description__icontains=search))

    ordering = list(ordering or ("name",))
    return qs.order_by(*ordering).distinct()


def get_product_by_slug(slug: str, *, include_inactive: bool = False) -> Optional[Product]:
    """Return a single product by slug with media and variants prefetched."""

    qs = Product.objects.select_related("sub_category", "material").prefetch_related(
        "media", Prefetch("variants", queryset=variants_with_availability(include_inactive=include_inactive))
    )
    if not include_inactive:
        qs = qs.filter(is_active=True)
    try:
        return qs.get(slug=slug)
    except Product.DoesNotExist:
        return None


def list_variants_for_product(*, product_id: int, include_inactive: bool = False) -> QuerySet[ProductVariant]:
    """Variants of a product annotated with ``available`` across all warehouses."""

    return variants_with_availability(include_inactive=include_inactive).filter(product_id=product_id)
