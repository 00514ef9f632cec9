"""Read-only order queries scoped by the caller's permissions."""

from common.choices import ItemRefundStatus, OrderStatus
from common.errors import NotFound, PermissionDenied
from django.db.models import Q, QuerySet
from users.permissions import Permission, has_permission

from .models import Coupon, Order


def _base() -> QuerySet[Order]:
    return Order.objects.select_related("refund").prefetch_related("items", "events")


def visible_orders(*, role: str, user) -> QuerySet[Order]:
    """All orders for roles with view:all-orders, otherwise the caller's own."""

    if has_permission(role, Permission.VIEW_ALL_ORDERS):
        return _base()
    if has_permission(role, Permission.VIEW_OWN_ORDERS) and getattr(user, "pk", None):
        return _base().filter(user_id=user.pk)
    return Order.objects.none()


def list_refund_requests(*, role: str) -> QuerySet[Order]:
    """Orders awaiting a refund decision (status or pending item requests)."""

    if not has_permission(role, Permission.VIEW_REFUND_REQUESTS):
        raise PermissionDenied()
    pending = Q(status=OrderStatus.REFUND_REQUESTED) | Q(
        items__refund_requested=True, items__refund_status=ItemRefundStatus.PENDING
    )
    return _base().filter(pending, refund__isnull=True).distinct()


def get_visible_order(*, role: str, user, order_id) -> Order:
    try:
        return visible_orders(role=role, user=user).get(pk=order_id)
    except (Order.DoesNotExist, ValueError, TypeError):
        raise NotFound("Order not found.")


def list_coupons(*, role: str) -> QuerySet[Coupon]:
    if not has_permission(role, Permission.VIEW_COUPONS):
        raise PermissionDenied()
    return Coupon.objects.all()
