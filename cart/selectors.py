"""Selectors for read-only cart queries."""

from decimal import Decimal

from common.errors import InvalidCoupon, InvalidInput
from django.db.models import F, Sum
from orders.coupons import calculate_discount, validate_coupon

from .models import Cart


def get_active_cart_for_user(*, user) -> Cart:
    """Return the user's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=user, session_id=None, status=Cart.STATUS_ACTIVE)
    return cart


def get_active_cart_for_session(*, session_id: str) -> Cart:
    """Return the guest session's active cart, creating it if missing."""

    cart, _ = Cart.objects.get_or_create(user=None, session_id=session_id, status=Cart.STATUS_ACTIVE)
    return cart


def get_active_cart(*, user=None, session_id=None) -> Cart:
    if user is not None and getattr(user, "is_authenticated", False):
        return get_active_cart_for_user(user=user)
    if not session_id:
        raise InvalidInput("A cart needs a user or a guest session id.")
    return get_active_cart_for_session(session_id=session_id)


def cart_totals(*, cart: Cart) -> dict:
    """Subtotal, counts, coupon discount and total for a cart.

    A coupon that no longer qualifies (expired, below minimum, ...) simply
    yields no discount here; checkout re-validates it and fails loudly.
    """

    agg = cart.items.aggregate(
        subtotal=Sum(F("unit_price") * F("quantity")),
        item_count=Sum("quantity"),
    )
    subtotal = agg.get("subtotal") or Decimal("0.00")
    discount = Decimal("0.00")
    if cart.coupon_id:
        try:
            coupon = validate_coupon(cart.coupon.code, subtotal)
        except InvalidCoupon:
            coupon = None
        if coupon is not None:
            discount = calculate_discount(coupon, subtotal)
    return {
        "subtotal": subtotal,
        "item_count": int(agg.get("item_count") or 0),
        "line_count": cart.items.count(),
        "coupon_code": cart.coupon.code if cart.coupon_id else None,
        "discount": discount,
        "total": max(Decimal("0.00"), subtotal - discount),
    }
