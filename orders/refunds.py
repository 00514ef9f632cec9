"""Refund processing.

A refund is recorded once per order as RefundDetails. It never touches the
inventory ledger: restocking returned goods is a separate stock adjustment.
"""

from decimal import Decimal
from typing import Iterable, Optional

from common.choices import ItemRefundStatus, OrderEventType, OrderStatus
from common.errors import AlreadyRefunded, InvalidAmount, InvalidInput, InvalidStateTransition
from django.db import transaction
from django.utils import timezone
from users.permissions import Permission, require_permission

from .models import Order, RefundDetails
from .services import _lock_order, _log, _money, _record

REFUNDABLE = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUND_REQUESTED})


def _actor_name(actor) -> str:
    if not getattr(actor, "pk", None):
        return ""
    return actor.get_full_name() or actor.username


@transaction.atomic
def process_refund(
    *,
    order_id: int,
    role: str,
    actor,
    refund_method: str,
    refund_amount,
    refund_reason: str,
    refund_proof: str = "",
    admin_notes: str = "",
    items_refunded: Optional[Iterable[int]] = None,
) -> Order:
    """Attach RefundDetails to an order.

    No item indices means a full refund: cancelled or refund-requested
    orders become ``refunded`` while a completed order keeps its status and
    shows as refunded through the overlay. With indices, only those items are
    marked refunded and the amount is capped at their line totals and at the
    order total.
    """

    require_permission(role, Permission.PROCESS_REFUNDS)
    order = _lock_order(order_id)
    if RefundDetails.objects.filter(order_id=order.id).exists():
        raise AlreadyRefunded()
    if order.status not in REFUNDABLE:
        raise InvalidStateTransition(current_state=order.status, attempted=OrderStatus.REFUNDED, allowed=[])

    amount = _money(refund_amount, "refund_amount")
    if amount <= 0:
        raise InvalidInput("Refund amount must be positive.")
    if not (refund_method or "").strip() or not (refund_reason or "").strip():
        raise InvalidInput("Refund method and reason are required.")

    items = list(order.items.select_for_update())
    indices = sorted(set(int(i) for i in (items_refunded or [])))
    if any(i < 0 or i >= len(items) for i in indices):
        raise InvalidInput("Unknown item index.")
    targets = [items[i] for i in indices] if indices else items
    maximum = order.total
    if indices:
        # Never more than the customer paid, even when a coupon discounted the lines
        maximum = min(maximum, sum((item.line_total for item in targets), Decimal("0.00")))
    if amount > maximum:
        raise InvalidAmount(amount=amount, maximum=maximum)

    RefundDetails.objects.create(
        order=order,
        refund_amount=amount,
        refund_method=refund_method,
        refund_reason=refund_reason,
        refund_proof=refund_proof,
        admin_notes=admin_notes,
        processed_by=actor if getattr(actor, "pk", None) else None,
        processed_by_name=_actor_name(actor),
        processed_at=timezone.now(),
        items_refunded=indices,
    )
    for item in targets:
        item.refund_status = ItemRefundStatus.REFUNDED
        item.save(update_fields=["refund_status", "updated_at"])

    prev = order.status
    if not indices and prev in (OrderStatus.CANCELLED, OrderStatus.REFUND_REQUESTED):
        order.status = OrderStatus.REFUNDED
    elif indices and prev == OrderStatus.REFUND_REQUESTED:
        order.status = order.previous_status or OrderStatus.CANCELLED
    if order.status != prev:
        order.save(update_fields=["status", "updated_at"])

    _record(order, OrderEventType.REFUNDED, status_from=prev, actor=actor, role=role, notes=refund_reason)
    _log(
        "order_refunded",
        order,
        amount=str(amount),
        full=not indices,
        items=indices,
        status_from=prev,
        status_to=order.status,
        processed_by=getattr(actor, "pk", None),
    )
    return order
