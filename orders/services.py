"""Order lifecycle services.

All status changes go through here. ``create_order`` allocates stock through
the planner and links every order item to the reservation backing it;
cancellation releases those reservations and completion commits them, so the
reservation state keeps both operations idempotent.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from catalog.models import ProductVariant
from common.choices import CanceledBy, ItemRefundStatus, OrderEventType, OrderStatus, PaymentStatus, Role
from common.errors import (
    AlreadyRefunded,
    AllocationFailed,
    ConcurrentStockChange,
    InactiveProduct,
    InactiveVariant,
    InsufficientStock,
    InvalidInput,
    InvalidStateTransition,
    NotFound,
)
from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from inventory import services as ledger
from inventory.allocation import AllocationRequest, allocate
from users.permissions import Permission, require_permission

from .coupons import calculate_discount, redeem_coupon, validate_coupon
from .models import IdempotencyKey, Order, OrderEvent, OrderItem
from .transitions import CUSTOMER_CANCELLABLE, CANCELLABLE, allowed_transitions

logger = logging.getLogger("furnish.orders")

CENT = Decimal("0.01")


@dataclass(frozen=True)
class OrderLine:
    """Checkout input: ``unit_price`` is the cart snapshot, or None to use the current price."""

    variant_id: int
    quantity: int
    unit_price: Optional[Decimal] = None


def _log(event: str, order: Order, **fields) -> None:
    try:
        logger.info(event, extra={"event": event, "order_id": order.id, "order_number": order.number, **fields})
    except Exception:
        # Logging should never break mutations
        pass


def _record(order: Order, event: str, *, status_from: str = "", actor=None, role: str = "", notes: str = "") -> None:
    OrderEvent.objects.create(
        order=order,
        event=event,
        status_from=status_from,
        status_to=order.status,
        actor=actor if getattr(actor, "pk", None) else None,
        role=role,
        notes=notes,
    )


def _money(value, field: str) -> Decimal:
    try:
        amount = Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)
    except Exception:
        raise InvalidInput(f"{field} must be a number.")
    if amount < 0:
        raise InvalidInput(f"{field} cannot be negative.")
    return amount


def _lock_order(order_id: int) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound("Order not found.")


def _resolve_lines(lines: Sequence[OrderLine]) -> List[Tuple[OrderLine, ProductVariant, Decimal]]:
    if not lines:
        raise InvalidInput("An order needs at least one item.")
    variants = ProductVariant.objects.select_related("product", "color").in_bulk([line.variant_id for line in lines])
    resolved = []
    for line in lines:
        if int(line.quantity) <= 0:
            raise InvalidInput("Quantity must be positive.")
        variant = variants.get(line.variant_id)
        if variant is None:
            raise NotFound("Variant not found.")
        if not variant.product.is_active:
            raise InactiveProduct()
        if not variant.is_active:
            raise InactiveVariant()
        price = variant.price if line.unit_price is None else _money(line.unit_price, "unit_price")
        resolved.append((line, variant, price))
    return resolved


def order_number(order: Order) -> str:
    prefix = getattr(settings, "ORDER_NUMBER_PREFIX", "ORD")
    return f"{prefix}-{int(order.id):06d}"


@transaction.atomic
def create_order(
    *,
    role: str,
    actor,
    lines: Sequence[OrderLine],
    user=None,
    manual: bool = False,
    coupon_code: str = "",
    delivery_fee=Decimal("0.00"),
    reservation_percentage: Optional[int] = None,
    **fields,
) -> Order:
    """Create an order and reserve its stock, all or nothing.

    ``fields`` carries the fulfillment/payment details stored on the order.
    Fails with AllocationFailed listing every short line, or
    ConcurrentStockChange when a reservation lost a race.
    """

    if manual:
        require_permission(role, Permission.CREATE_MANUAL_ORDERS)
    elif user is None or not getattr(user, "pk", None):
        raise InvalidInput("Online orders need a customer account.")

    resolved = _resolve_lines(lines)
    subtotal = sum((price * int(line.quantity) for line, _, price in resolved), Decimal("0.00"))
    delivery_fee = _money(delivery_fee, "delivery_fee")

    coupon = None
    discount = Decimal("0.00")
    if coupon_code:
        coupon = validate_coupon(coupon_code, subtotal, lock=True)
        discount = calculate_discount(coupon, subtotal)
    total = subtotal - discount + delivery_fee

    is_reservation = False
    reservation_fee = Decimal("0.00")
    if reservation_percentage is not None:
        pct = int(reservation_percentage)
        if pct <= 0 or pct > 100:
            raise InvalidInput("Reservation percentage must be between 1 and 100.")
        if pct < 100:
            is_reservation = True
            reservation_fee = (total * pct / Decimal(100)).quantize(CENT, rounding=ROUND_HALF_UP)

    order = Order.objects.create(
        user=user,
        created_by=actor if getattr(actor, "pk", None) else None,
        is_manual_order=manual,
        status=OrderStatus.RESERVED if is_reservation else OrderStatus.PENDING,
        subtotal=subtotal,
        coupon=coupon,
        coupon_code=coupon.code if coupon else "",
        coupon_discount=discount,
        delivery_fee=delivery_fee,
        total=total,
        is_reservation=is_reservation,
        reservation_percentage=reservation_percentage if is_reservation else None,
        reservation_fee=reservation_fee,
        **fields,
    )
    order.number = order_number(order)
    order.save(update_fields=["number"])

    requests = [AllocationRequest(variant.product_id, variant.id, int(line.quantity)) for line, variant, _ in resolved]
    result = allocate(requests, reference=order.number)
    if not result.success:
        if any(e.code == ConcurrentStockChange.code for e in result.errors):
            raise ConcurrentStockChange()
        raise AllocationFailed(result.errors)

    for share in result.allocated_items:
        _, variant, price = resolved[share.line_index]
        OrderItem.objects.create(
            order=order,
            product=variant.product,
            variant=variant,
            product_name=variant.product.name,
            variant_code=variant.code,
            color=variant.color.name,
            size=variant.size or "",
            quantity=share.quantity,
            unit_price=price,
            warehouse_source=share.warehouse,
            reservation_id=share.reservation_id,
        )
    if coupon is not None:
        redeem_coupon(coupon_id=coupon.id)

    _record(order, OrderEventType.CREATED, actor=actor, role=role)
    _log("order_created", order, user_id=order.user_id, total=str(total), manual=manual, status_to=order.status)
    return order


def _release_stock(order: Order) -> None:
    for item in order.items.filter(reservation__isnull=False):
        ledger.release_reservation(reservation_id=item.reservation_id)


def _commit_stock(order: Order) -> None:
    for item in order.items.filter(reservation__isnull=False):
        ledger.commit_reservation(reservation_id=item.reservation_id)


def _reserve_again(order: Order) -> None:
    """Re-hold stock for a reopened order at each item's original warehouse."""
    for item in order.items.all():
        res = ledger.reserve(
            variant_id=item.variant_id,
            warehouse=item.warehouse_source,
            quantity=item.quantity,
            reference=order.number or "",
        )
        item.reservation = res
        item.save(update_fields=["reservation", "updated_at"])


def _apply_cancel(order: Order, *, canceled_by: str, reason: str = "") -> None:
    _release_stock(order)
    order.status = OrderStatus.CANCELLED
    order.canceled_by = canceled_by
    order.cancel_reason = reason
    order.cancelled_at = timezone.now()
    order.save(update_fields=["status", "canceled_by", "cancel_reason", "cancelled_at", "updated_at"])


@transaction.atomic
def transition_status(*, order_id: int, new_status: str, role: str, actor=None, notes: str = "") -> Order:
    """Move an order along the state machine as ``role``.

    Cancelling an already-cancelled order is a no-op; any other move outside
    ``allowed_transitions`` fails with InvalidStateTransition.
    """

    require_permission(role, Permission.UPDATE_ORDER_STATUS)
    order = _lock_order(order_id)
    prev = order.status
    if new_status == OrderStatus.CANCELLED and prev == OrderStatus.CANCELLED:
        return order
    allowed = allowed_transitions(order, role)
    if new_status not in allowed:
        raise InvalidStateTransition(current_state=prev, attempted=new_status, allowed=allowed)

    event = OrderEventType.STATUS_CHANGED
    if new_status == OrderStatus.CANCELLED:
        _apply_cancel(order, canceled_by=CanceledBy.ADMIN, reason=notes)
        event = OrderEventType.CANCELLED
    else:
        if prev == OrderStatus.CANCELLED:
            try:
                _reserve_again(order)
            except InsufficientStock:
                _log("order_reopen_failed", order, status_from=prev)
                raise
            order.canceled_by = ""
            order.cancelled_at = None
            event = OrderEventType.REOPENED
        if new_status == OrderStatus.COMPLETED:
            _commit_stock(order)
            order.completed_at = timezone.now()
        order.status = new_status
        order.save(update_fields=["status", "canceled_by", "cancelled_at", "completed_at", "updated_at"])

    _record(order, event, status_from=prev, actor=actor, role=role, notes=notes)
    _log("order_status_changed", order, user_id=order.user_id, status_from=prev, status_to=order.status, role=role)
    return order


@transaction.atomic
def cancel_order(*, order_id: int, role: str, actor=None, reason: str = "") -> Order:
    """Cancel an order and release its stock; repeating the call is a no-op.

    Customers may cancel only their own orders and only before processing.
    """

    require_permission(role, Permission.CANCEL_ORDERS)
    order = _lock_order(order_id)
    is_customer = role == Role.CUSTOMER
    if is_customer and (actor is None or order.user_id != getattr(actor, "pk", None)):
        raise NotFound("Order not found.")
    prev = order.status
    if prev == OrderStatus.CANCELLED:
        return order
    cancellable = CUSTOMER_CANCELLABLE if is_customer else CANCELLABLE
    if prev not in cancellable or order.is_refunded:
        raise InvalidStateTransition(current_state=prev, attempted=OrderStatus.CANCELLED, allowed=[])

    _apply_cancel(order, canceled_by=CanceledBy.CUSTOMER if is_customer else CanceledBy.ADMIN, reason=reason)
    _record(order, OrderEventType.CANCELLED, status_from=prev, actor=actor, role=role, notes=reason)
    _log("order_status_changed", order, user_id=order.user_id, status_from=prev, status_to=order.status, role=role)
    return order


@transaction.atomic
def request_refund(
    *, order_id: int, role: str, actor, item_indices: Iterable[int], reason: str, proof: str = ""
) -> Order:
    """Flag items of the caller's own completed or cancelled order for refund.

    A cancelled order moves to refund-requested; a completed order stays
    completed and carries the request on its items.
    """

    require_permission(role, Permission.VIEW_OWN_ORDERS)
    order = _lock_order(order_id)
    if order.user_id is None or order.user_id != getattr(actor, "pk", None):
        raise NotFound("Order not found.")
    if order.is_refunded:
        raise AlreadyRefunded()
    if order.status not in (OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUND_REQUESTED):
        raise InvalidStateTransition(current_state=order.status, attempted=OrderStatus.REFUND_REQUESTED, allowed=[])
    if not (reason or "").strip():
        raise InvalidInput("A refund reason is required.")

    items = list(order.items.all())
    indices = sorted(set(int(i) for i in item_indices))
    if not indices or any(i < 0 or i >= len(items) for i in indices):
        raise InvalidInput("Unknown item index.")
    for i in indices:
        item = items[i]
        if item.refund_requested:
            raise InvalidInput(f"Item {i} already has a refund request.")
        item.refund_requested = True
        item.refund_status = ItemRefundStatus.PENDING
        item.refund_reason = reason
        item.refund_proof = proof
        item.save(update_fields=["refund_requested", "refund_status", "refund_reason", "refund_proof", "updated_at"])

    prev = order.status
    if prev == OrderStatus.CANCELLED:
        order.previous_status = prev
        order.status = OrderStatus.REFUND_REQUESTED
        order.save(update_fields=["status", "previous_status", "updated_at"])
    _record(order, OrderEventType.REFUND_REQUESTED, status_from=prev, actor=actor, role=role, notes=reason)
    _log("order_refund_requested", order, user_id=order.user_id, items=indices, status_to=order.status)
    return order


@transaction.atomic
def verify_payment(*, order_id: int, role: str, actor, approved: bool = True, notes: str = "") -> Order:
    """Record the outcome of a manual payment-proof check; the status does not move."""

    require_permission(role, Permission.UPDATE_ORDER_STATUS)
    order = _lock_order(order_id)
    order.payment_status = PaymentStatus.VERIFIED if approved else PaymentStatus.REJECTED
    order.payment_verified_at = timezone.now()
    order.verified_by = actor if getattr(actor, "pk", None) else None
    order.save(update_fields=["payment_status", "payment_verified_at", "verified_by", "updated_at"])
    _record(order, OrderEventType.PAYMENT_VERIFIED, status_from=order.status, actor=actor, role=role, notes=notes)
    _log("order_payment_verified", order, payment_status=order.payment_status)
    return order


def with_idempotency(
    *,
    key: str,
    user,
    path: str,
    method: str,
    handler: Callable[[], Tuple[dict, int]],
    request_hash: Optional[str] = None,
) -> Tuple[dict, int]:
    """Run handler idempotently and persist its response for the given key and scope.

    - Scope is derived from the caller: for authenticated users, "user:<id>"; otherwise "anon".
    - If a record exists and the stored `request_hash` differs from the provided one, returns 409.
    - If a record exists but response is not yet stored, returns 409 to indicate in-progress.
    """

    scope = f"user:{getattr(user, 'id', None)}" if getattr(user, "id", None) else "anon"
    method = str(method).upper()
    path = str(path)

    try:
        with transaction.atomic():
            idem = IdempotencyKey.objects.create(
                key=key,
                user=user if getattr(user, "id", None) else None,
                scope=scope,
                path=path,
                method=method,
                request_hash=request_hash,
                expires_at=timezone.now() + timedelta(hours=24),
            )
    except IntegrityError:
        idem = IdempotencyKey.objects.get(key=key, scope=scope, path=path, method=method)
        if idem.request_hash and request_hash and idem.request_hash != request_hash:
            return {"detail": "Idempotency key reused with different request payload"}, 409
        if idem.response_json is not None and idem.response_code is not None:
            return idem.response_json, int(idem.response_code)
        return {"detail": "Request in progress"}, 409

    body, code = handler()

    def _json_safe(value):
        if isinstance(value, Decimal):
            return str(value)
        if isinstance(value, dict):
            return {k: _json_safe(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [_json_safe(v) for v in value]
        return value

    IdempotencyKey.objects.filter(id=idem.id).update(response_json=_json_safe(body), response_code=code)
    return body, code


def compute_request_hash(data: Optional[dict]) -> Optional[str]:
    """Canonical SHA256 of the request body (sorted keys); None when empty."""
    if not data:
        return None
    try:
        payload = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    except (TypeError, ValueError):
        return None
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
