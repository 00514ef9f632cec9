"""Cart services: advisory stock validation for cart mutations.

Cart checks read the inventory ledger but never reserve; the binding
reservation happens at checkout through the allocation planner. Every
mutation locks the cart row so concurrent tabs merge lines one at a time.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from catalog.models import Product
from catalog.services import generate_variant_id
from common.errors import (
    CartFull,
    InactiveProduct,
    InactiveVariant,
    InsufficientStock,
    InvalidInput,
    NotFound,
    VariantNotFound,
)
from django.conf import settings
from django.db import transaction
from inventory.selectors import get_available
from orders.coupons import validate_coupon
from orders.services import OrderLine, create_order

from .models import Cart, CartItem
from .selectors import get_active_cart, get_active_cart_for_session, get_active_cart_for_user

logger = logging.getLogger("furnish.cart")


@dataclass(frozen=True)
class UpdateOutcome:
    """Result of a quantity update; ``available`` is the current ceiling."""

    applied: bool
    available: int
    item: Optional[CartItem] = None


def max_lines() -> int:
    return int(getattr(settings, "CART_MAX_LINES", 50))


def line_key(product_id, variant_code: str) -> str:
    """Deterministic identity for a cart line.

    Lines given as (size, color) are resolved to their variant code first, so
    every key names a variant.
    """
    return f"{product_id}|v|{variant_code}"


def _log(event: str, cart: Cart, **fields) -> None:
    try:
        logger.info(
            event,
            extra={
                "event": event,
                "cart_id": cart.id,
                "user_id": cart.user_id,
                "guest": cart.user_id is None,
                **fields,
            },
        )
    except Exception:
        pass


def _locked_cart(*, user=None, session_id=None) -> Cart:
    cart = get_active_cart(user=user, session_id=session_id)
    return Cart.objects.select_for_update().get(pk=cart.pk)


def _get_line(cart: Cart, key: str) -> Optional[CartItem]:
    return CartItem.objects.select_for_update().filter(cart=cart, line_key=key).first()


@transaction.atomic
def add_line(
    *,
    product_id: int,
    quantity: int,
    variant_id: Optional[str] = None,
    color: str = "",
    size: str = "",
    user=None,
    session_id: Optional[str] = None,
) -> CartItem:
    """Add ``quantity`` of a variant, merging into an existing line.

    ``variant_id`` is the variant code; without it the code is derived from
    (size, color). The unit price is snapshotted when the line is created.
    """

    if int(quantity) <= 0:
        raise InvalidInput("Quantity must be positive.")
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise NotFound("Product not found.")
    if not product.is_active:
        raise InactiveProduct()
    code = variant_id or generate_variant_id(size, color)
    variant = product.variants.select_related("color").filter(code=code).first()
    if variant is None:
        raise VariantNotFound()
    if not variant.is_active:
        raise InactiveVariant()

    cart = _locked_cart(user=user, session_id=session_id)
    key = line_key(product.id, variant.code)
    item = _get_line(cart, key)
    candidate = int(quantity) + (int(item.quantity) if item else 0)
    if item is None and cart.items.count() >= max_lines():
        raise CartFull(max_lines())
    available = get_available(variant.id)
    if candidate > available:
        raise InsufficientStock(
            available=available, requested=candidate, product_id=product.id, variant_id=variant.id
        )

    if item is not None:
        item.quantity = candidate
        item.save(update_fields=["quantity", "updated_at"])
        _log("cart.item_updated", cart, variant_id=variant.id, quantity=candidate)
    else:
        item = CartItem.objects.create(
            cart=cart,
            line_key=key,
            product=product,
            variant=variant,
            color=variant.color.name,
            size=variant.size or "",
            quantity=candidate,
            unit_price=variant.price,
        )
        _log("cart.item_added", cart, variant_id=variant.id, quantity=candidate)
    cart.save(update_fields=["updated_at"])
    return item


@transaction.atomic
def update_quantity(*, line_key: str, quantity: int, user=None, session_id: Optional[str] = None) -> UpdateOutcome:
    """Set a line's quantity; zero or less removes it.

    An update that would oversell changes nothing and reports the current
    ceiling with ``applied=False``.
    """

    cart = _locked_cart(user=user, session_id=session_id)
    item = _get_line(cart, line_key)
    if item is None:
        raise NotFound("Cart item not found.")
    available = get_available(item.variant_id)
    if int(quantity) <= 0:
        item.delete()
        _log("cart.item_removed", cart, line_key=line_key)
        return UpdateOutcome(applied=True, available=available)
    if int(quantity) > available:
        _log("cart.update_rejected", cart, line_key=line_key, requested=int(quantity), available=available)
        return UpdateOutcome(applied=False, available=available, item=item)
    item.quantity = int(quantity)
    item.save(update_fields=["quantity", "updated_at"])
    _log("cart.item_updated", cart, variant_id=item.variant_id, quantity=item.quantity)
    return UpdateOutcome(applied=True, available=available, item=item)


@transaction.atomic
def remove_line(*, line_key: str, user=None, session_id: Optional[str] = None) -> None:
    cart = _locked_cart(user=user, session_id=session_id)
    deleted, _ = CartItem.objects.filter(cart=cart, line_key=line_key).delete()
    if deleted:
        _log("cart.item_removed", cart, line_key=line_key)


@transaction.atomic
def clear_cart(*, user=None, session_id: Optional[str] = None) -> None:
    """Remove every line and the applied coupon."""

    cart = _locked_cart(user=user, session_id=session_id)
    CartItem.objects.filter(cart=cart).delete()
    cart.coupon = None
    cart.save(update_fields=["coupon", "updated_at"])
    _log("cart.cleared", cart)


@transaction.atomic
def abandon_cart(*, user=None, session_id: Optional[str] = None) -> None:
    cart = _locked_cart(user=user, session_id=session_id)
    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ABANDONED
    cart.save(update_fields=["status", "updated_at"])
    _log("cart.abandoned", cart)


@transaction.atomic
def apply_coupon(*, code: str, user=None, session_id: Optional[str] = None) -> Cart:
    from .selectors import cart_totals

    cart = _locked_cart(user=user, session_id=session_id)
    coupon = validate_coupon(code, cart_totals(cart=cart)["subtotal"])
    cart.coupon = coupon
    cart.save(update_fields=["coupon", "updated_at"])
    _log("cart.coupon_applied", cart, coupon=coupon.code)
    return cart


@transaction.atomic
def remove_coupon(*, user=None, session_id: Optional[str] = None) -> Cart:
    cart = _locked_cart(user=user, session_id=session_id)
    cart.coupon = None
    cart.save(update_fields=["coupon", "updated_at"])
    return cart


@transaction.atomic
def merge_guest_cart_to_user(*, session_id: str, user) -> Cart:
    """Merge a guest session cart into the user's active cart.

    Merged quantities are capped at current availability and the line limit
    still applies; lines that cannot fit are dropped.
    """

    dest = Cart.objects.select_for_update().get(pk=get_active_cart_for_user(user=user).pk)
    src = get_active_cart_for_session(session_id=session_id)
    dropped = 0
    for s_item in src.items.select_related("variant"):
        d_item = _get_line(dest, s_item.line_key)
        if d_item is None and dest.items.count() >= max_lines():
            dropped += 1
            continue
        wanted = int(s_item.quantity) + (int(d_item.quantity) if d_item else 0)
        qty = min(wanted, get_available(s_item.variant_id))
        if qty <= 0:
            dropped += 1
            continue
        if d_item is not None:
            d_item.quantity = qty
            d_item.save(update_fields=["quantity", "updated_at"])
        else:
            CartItem.objects.create(
                cart=dest,
                line_key=s_item.line_key,
                product_id=s_item.product_id,
                variant_id=s_item.variant_id,
                color=s_item.color,
                size=s_item.size,
                quantity=qty,
                unit_price=s_item.unit_price,
            )
    if dest.coupon_id is None and src.coupon_id is not None:
        dest.coupon_id = src.coupon_id
    dest.save(update_fields=["coupon", "updated_at"])
    src_id = src.id
    src.delete()
    _log("cart.merged", dest, src_cart_id=src_id, session_id=session_id, dropped=dropped)
    return dest


@transaction.atomic
def checkout_cart(*, user, role: str, **details):
    """Turn the user's active cart into an order at the snapshotted prices.

    Allocation is all or nothing; on failure the cart is left untouched.
    """

    cart = _locked_cart(user=user)
    items = list(cart.items.all())
    if not items:
        raise InvalidInput("Cart is empty.")
    order = create_order(
        role=role,
        actor=user,
        user=user,
        lines=[OrderLine(variant_id=i.variant_id, quantity=i.quantity, unit_price=i.unit_price) for i in items],
        coupon_code=cart.coupon.code if cart.coupon_id else "",
        **details,
    )
    CartItem.objects.filter(cart=cart).delete()
    cart.status = Cart.STATUS_ORDERED
    cart.save(update_fields=["status", "updated_at"])
    _log("cart.checked_out", cart, order_id=order.id, order_number=order.number)
    return order
