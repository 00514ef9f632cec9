"""Catalog services: product and variant mutations.

Every write re-checks the RBAC gate, validates taxonomy references against
active entries and keeps the "active product has an active variant" rule.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional

from audit.services import field_changes, record, snapshot
from common.choices import AuditAction, AuditTarget, ProductCategory
from common.errors import InvalidInput, NoActiveVariant, NotFound, UnknownTaxonomyReference
from django.db import transaction
from django.utils.text import slugify
from taxonomy.models import Color, Material, SubCategory
from taxonomy.selectors import get_active
from users.permissions import Permission, require_permission

from .models import Media, Product, ProductVariant

logger = logging.getLogger("furnish.catalog")

PRODUCT_FIELDS = ("name", "description", "base_price", "category", "dimensions", "is_featured", "is_active")
AUDITED_PRODUCT_FIELDS = PRODUCT_FIELDS + ("sub_category", "material")
AUDITED_VARIANT_FIELDS = ("size", "color", "price", "dimensions", "is_active")


def _slug_part(value) -> str:
    return "-".join(str(value).split()).lower()


def generate_variant_id(size: Optional[str], color) -> str:
    """Deterministic variant code from (size, color).

    Whitespace is trimmed and collapsed to ``-`` and the result lowercased;
    a blank size means one size. ``color`` may be a Color or its name.
    """

    color_name = getattr(color, "name", color)
    size_slug = _slug_part(size) if size and str(size).strip() else "one-size"
    color_slug = _slug_part(color_name) if color_name and str(color_name).strip() else "default"
    return f"{size_slug}-{color_slug}"


def _money(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidInput(f"{field} must be a number.")
    if amount < 0:
        raise InvalidInput(f"{field} must not be negative.")
    return amount.quantize(Decimal("0.01"))


def _resolve(model, kind: str, value):
    entry = get_active(model, value)
    if entry is None:
        raise UnknownTaxonomyReference(kind=kind, value=getattr(value, "pk", value))
    return entry


def _unique_slug(name: str, exclude_id: Optional[int] = None) -> str:
    base = slugify(name) or "product"
    slug, n = base, 2
    qs = Product.objects.all()
    if exclude_id:
        qs = qs.exclude(id=exclude_id)
    while qs.filter(slug=slug).exists():
        slug = f"{base}-{n}"
        n += 1
    return slug


def _audit(action: str, product: Product, *, actor, role: str, changes=None, **metadata) -> None:
    record(
        action,
        target_type=AuditTarget.PRODUCT,
        target=product,
        actor=actor,
        role=role,
        changes=changes,
        metadata=metadata,
    )


def _require_active_variant(product: Product) -> None:
    if product.is_active and not product.variants.filter(is_active=True).exists():
        raise NoActiveVariant()


def _upsert_variant(product: Product, *, size, color, price, dimensions=None, sort_order=None) -> ProductVariant:
    color = _resolve(Color, "color", color)
    size = " ".join(str(size).split()) if size and str(size).strip() else None
    code = generate_variant_id(size, color)
    defaults = {
        "size": size,
        "color": color,
        "price": _money(price, "price"),
        "dimensions": dimensions,
        "is_active": True,
    }
    if sort_order is not None:
        defaults["sort_order"] = int(sort_order)
    variant, _ = ProductVariant.objects.update_or_create(product=product, code=code, defaults=defaults)
    return variant


@transaction.atomic
def create_product(
    *,
    role: str,
    name: str,
    category: str,
    base_price=Decimal("0.00"),
    sub_category=None,
    material=None,
    variants: Iterable[dict] = (),
    media: Iterable[dict] = (),
    actor=None,
    **fields,
) -> Product:
    """Create a product with its variants in one transaction."""

    require_permission(role, Permission.CREATE_PRODUCTS)
    name = " ".join(str(name or "").split())
    if not name:
        raise InvalidInput("Name is required.")
    if category not in ProductCategory.values:
        raise InvalidInput(f"Unknown category: {category}")
    unknown = set(fields) - set(PRODUCT_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown fields: {', '.join(sorted(unknown))}")

    product = Product.objects.create(
        name=name,
        slug=_unique_slug(name),
        category=category,
        base_price=_money(base_price, "base_price"),
        sub_category=_resolve(SubCategory, "sub_category", sub_category) if sub_category else None,
        material=_resolve(Material, "material", material) if material else None,
        **fields,
    )
    for idx, spec in enumerate(variants):
        _upsert_variant(product, sort_order=spec.get("sort_order", idx), **_variant_args(spec))
    for idx, item in enumerate(media):
        Media.objects.create(
            product=product,
            url=item["url"],
            alt_text=item.get("alt_text", ""),
            is_primary=bool(item.get("is_primary", idx == 0)),
            sort_order=item.get("sort_order", idx),
        )
    _require_active_variant(product)
    logger.info("catalog.product_created", extra={"event": "catalog.product_created", "product_id": product.id})
    _audit(
        AuditAction.PRODUCT_CREATED,
        product,
        actor=actor,
        role=role,
        variants=list(product.variants.values_list("code", flat=True)),
    )
    return product


def _variant_args(spec: dict) -> dict:
    return {
        "size": spec.get("size"),
        "color": spec.get("color"),
        "price": spec.get("price"),
        "dimensions": spec.get("dimensions"),
    }


def _get_product(product_id: int) -> Product:
    try:
        return Product.objects.select_for_update().get(id=product_id)
    except Product.DoesNotExist:
        raise NotFound("Product not found.")


@transaction.atomic
def update_product(*, role: str, product_id: int, actor=None, **changes) -> Product:
    """Apply field changes; only references changed here are re-validated.

    Existing references to entries deactivated since stay as they are.
    """

    require_permission(role, Permission.UPDATE_PRODUCTS)
    product = _get_product(product_id)
    before = snapshot(product, AUDITED_PRODUCT_FIELDS)
    if "sub_category" in changes:
        value = changes.pop("sub_category")
        product.sub_category = _resolve(SubCategory, "sub_category", value) if value else None
    if "material" in changes:
        value = changes.pop("material")
        product.material = _resolve(Material, "material", value) if value else None
    unknown = set(changes) - set(PRODUCT_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown fields: {', '.join(sorted(unknown))}")
    if "category" in changes and changes["category"] not in ProductCategory.values:
        raise InvalidInput(f"Unknown category: {changes['category']}")
    if "base_price" in changes:
        changes["base_price"] = _money(changes["base_price"], "base_price")
    if "name" in changes:
        changes["name"] = " ".join(str(changes["name"] or "").split())
        if not changes["name"]:
            raise InvalidInput("Name is required.")
    for field, value in changes.items():
        setattr(product, field, value)
    product.save()
    _require_active_variant(product)
    logger.info("catalog.product_updated", extra={"event": "catalog.product_updated", "product_id": product.id})
    diff = field_changes(before, snapshot(product, AUDITED_PRODUCT_FIELDS))
    if diff:
        _audit(AuditAction.PRODUCT_MODIFIED, product, actor=actor, role=role, changes=diff)
    return product


@transaction.atomic
def save_variant(
    *, role: str, product_id: int, size, color, price, dimensions=None, sort_order=None, actor=None
) -> ProductVariant:
    """Create or update the variant for (size, color); reactivates a deactivated match."""

    require_permission(role, Permission.UPDATE_PRODUCTS)
    product = _get_product(product_id)
    before = {v.code: snapshot(v, AUDITED_VARIANT_FIELDS) for v in product.variants.all()}
    variant = _upsert_variant(
        product, size=size, color=color, price=price, dimensions=dimensions, sort_order=sort_order
    )
    logger.info(
        "catalog.variant_saved",
        extra={"event": "catalog.variant_saved", "product_id": product.id, "variant_code": variant.code},
    )
    diff = field_changes(before.get(variant.code, {}), snapshot(variant, AUDITED_VARIANT_FIELDS))
    if diff:
        _audit(AuditAction.PRODUCT_MODIFIED, product, actor=actor, role=role, changes=diff, variant=variant.code)
    return variant


@transaction.atomic
def deactivate_variant(*, role: str, product_id: int, variant_code: str, actor=None) -> ProductVariant:
    require_permission(role, Permission.UPDATE_PRODUCTS)
    product = _get_product(product_id)
    try:
        variant = product.variants.get(code=variant_code)
    except ProductVariant.DoesNotExist:
        raise NotFound("Variant not found.")
    if not variant.is_active:
        return variant
    variant.is_active = False
    variant.save(update_fields=["is_active", "updated_at"])
    _require_active_variant(product)
    _audit(
        AuditAction.PRODUCT_MODIFIED,
        product,
        actor=actor,
        role=role,
        changes=[{"field": "is_active", "old": "True", "new": "False"}],
        variant=variant.code,
    )
    return variant


@transaction.atomic
def deactivate_product(*, role: str, product_id: int, actor=None) -> Product:
    require_permission(role, Permission.DELETE_PRODUCTS)
    product = _get_product(product_id)
    if not product.is_active:
        return product
    product.is_active = False
    product.save(update_fields=["is_active", "updated_at"])
    logger.info("catalog.product_deactivated", extra={"event": "catalog.product_deactivated", "product_id": product.id})
    _audit(AuditAction.PRODUCT_DELETED, product, actor=actor, role=role)
    return product


@transaction.atomic
def reactivate_product(*, role: str, product_id: int, actor=None) -> Product:
    require_permission(role, Permission.UPDATE_PRODUCTS)
    product = _get_product(product_id)
    if product.is_active:
        return product
    product.is_active = True
    _require_active_variant(product)
    product.save(update_fields=["is_active", "updated_at"])
    _audit(AuditAction.PRODUCT_REACTIVATED, product, actor=actor, role=role)
    return product
