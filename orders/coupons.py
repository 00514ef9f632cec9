"""Coupon validation, discount math and admin management.

Admin mutations are RBAC-gated and write an audit event in the same
transaction as the change.
"""

from decimal import ROUND_HALF_UP, Decimal

from audit.services import field_changes, record, snapshot
from common.choices import AuditAction, AuditTarget, DiscountType
from common.errors import DuplicateName, InvalidCoupon, InvalidInput, NotFound
from django.db import transaction
from django.db.models import F
from django.utils import timezone
from users.permissions import Permission, require_permission

from .models import Coupon

CENT = Decimal("0.01")
COUPON_FIELDS = (
    "code",
    "description",
    "discount_type",
    "discount_value",
    "min_purchase",
    "max_discount",
    "expires_at",
    "usage_limit",
)

def validate_coupon(code: str, subtotal: Decimal, *, lock: bool = False) -> Coupon:
    """Return the usable coupon for ``code`` or raise InvalidCoupon with the reason."""

    qs = Coupon.objects.select_for_update() if lock else Coupon.objects.all()
    coupon = qs.filter(code__iexact=(code or "").strip()).first()
    if coupon is None:
        raise InvalidCoupon("Invalid coupon code.")
    if not coupon.is_active:
        raise InvalidCoupon("This coupon is no longer active.")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise InvalidCoupon("This coupon has reached its usage limit.")
    if coupon.expires_at and coupon.expires_at < timezone.now():
        raise InvalidCoupon("This coupon has expired.")
    if Decimal(subtotal) < coupon.min_purchase:
        raise InvalidCoupon(f"Minimum purchase of {coupon.min_purchase:,.2f} required.")
    return coupon


def calculate_discount(coupon: Coupon, subtotal: Decimal) -> Decimal:
    subtotal = Decimal(subtotal)
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = subtotal * coupon.discount_value / Decimal(100)
        if coupon.max_discount is not None:
            discount = min(discount, coupon.max_discount)
    else:
        discount = coupon.discount_value
    return min(discount, subtotal).quantize(CENT, rounding=ROUND_HALF_UP)


@transaction.atomic
def redeem_coupon(*, coupon_id: int) -> None:
    Coupon.objects.filter(id=coupon_id).update(used_count=F("used_count") + 1)


def _clean(values: dict) -> dict:
    if "code" in values:
        values["code"] = (values["code"] or "").strip().upper()
        if not values["code"]:
            raise InvalidInput("Coupon code is required.")
    if "discount_type" in values and values["discount_type"] not in DiscountType.values:
        raise InvalidInput(f"Unknown discount type: {values['discount_type']}")
    if "discount_value" in values and Decimal(values["discount_value"]) <= 0:
        raise InvalidInput("Discount value must be positive.")
    for name in ("min_purchase", "max_discount"):
        if values.get(name) is not None and Decimal(values[name]) < 0:
            raise InvalidInput(f"{name} cannot be negative.")
    return values


def _check_code_free(code: str, *, exclude_id=None) -> None:
    qs = Coupon.objects.filter(code__iexact=code)
    if exclude_id is not None:
        qs = qs.exclude(pk=exclude_id)
    if qs.exists():
        raise DuplicateName(code)


def _check_percentage(coupon: Coupon) -> None:
    if coupon.discount_type == DiscountType.PERCENTAGE and coupon.discount_value > 100:
        raise InvalidInput("A percentage discount cannot exceed 100.")


def _lock(coupon_id: int) -> Coupon:
    try:
        return Coupon.objects.select_for_update().get(pk=coupon_id)
    except Coupon.DoesNotExist:
        raise NotFound("Coupon not found.")


@transaction.atomic
def create_coupon(*, role: str, actor=None, **values) -> Coupon:
    require_permission(role, Permission.CREATE_COUPONS)
    unknown = set(values) - set(COUPON_FIELDS) - {"is_active"}
    if unknown:
        raise InvalidInput(f"Unknown coupon fields: {', '.join(sorted(unknown))}")
    for name in ("code", "discount_type", "discount_value"):
        if values.get(name) in (None, ""):
            raise InvalidInput(f"{name} is required.")
    values = _clean(values)
    _check_code_free(values["code"])
    coupon = Coupon(**values)
    _check_percentage(coupon)
    coupon.save()
    record(
        AuditAction.COUPON_CREATED,
        target_type=AuditTarget.COUPON,
        target=coupon,
        actor=actor,
        role=role,
        changes=field_changes({}, snapshot(coupon, COUPON_FIELDS)),
    )
    return coupon


@transaction.atomic
def update_coupon(*, role: str, coupon_id: int, changes: dict, actor=None) -> Coupon:
    """Patch coupon terms. ``used_count`` and ``is_active`` are not editable here."""

    require_permission(role, Permission.UPDATE_COUPONS)
    unknown = set(changes) - set(COUPON_FIELDS)
    if unknown:
        raise InvalidInput(f"Unknown coupon fields: {', '.join(sorted(unknown))}")
    coupon = _lock(coupon_id)
    changes = _clean(dict(changes))
    if "code" in changes:
        _check_code_free(changes["code"], exclude_id=coupon.pk)

    before = snapshot(coupon, COUPON_FIELDS)
    for name, value in changes.items():
        setattr(coupon, name, value)
    _check_percentage(coupon)
    diff = field_changes(before, snapshot(coupon, COUPON_FIELDS))
    if not diff:
        return coupon
    coupon.save()
    record(
        AuditAction.COUPON_MODIFIED,
        target_type=AuditTarget.COUPON,
        target=coupon,
        actor=actor,
        role=role,
        changes=diff,
    )
    return coupon


@transaction.atomic
def set_coupon_active(*, role: str, coupon_id: int, active: bool, actor=None) -> Coupon:
    require_permission(role, Permission.UPDATE_COUPONS if active else Permission.DELETE_COUPONS)
    coupon = _lock(coupon_id)
    if coupon.is_active == active:
        return coupon
    coupon.is_active = active
    coupon.save(update_fields=["is_active", "updated_at"])
    record(
        AuditAction.COUPON_ACTIVATED if active else AuditAction.COUPON_DEACTIVATED,
        target_type=AuditTarget.COUPON,
        target=coupon,
        actor=actor,
        role=role,
        changes=[{"field": "is_active", "old": str(not active), "new": str(active)}],
    )
    return coupon
