"""Order status state machine.

One table answers "which statuses may this role move this order to next",
and every transition path consults it. Forward moves and cancellation need
``update:order-status``; backward moves and reopening a cancelled order are
reserved for privileged roles (admin, owner). ``completed``, ``refunded`` and
``refund-requested`` are locked, as is any order carrying RefundDetails.
"""

from typing import FrozenSet

from common.choices import OrderStatus as S
from users.permissions import Permission, has_permission, is_privileged

FORWARD = {
    S.PENDING: S.PROCESSING,
    S.RESERVED: S.PROCESSING,
    S.PROCESSING: S.READY_FOR_PICKUP,
    S.READY_FOR_PICKUP: S.COMPLETED,
}

CANCELLABLE = frozenset({S.PENDING, S.RESERVED, S.PROCESSING, S.READY_FOR_PICKUP})

CUSTOMER_CANCELLABLE = frozenset({S.PENDING, S.RESERVED})

LOCKED = frozenset({S.COMPLETED, S.REFUNDED, S.REFUND_REQUESTED})

# "entry" resolves to pending or reserved depending on how the order was placed.
ENTRY = "entry"
BACKWARD = {
    S.READY_FOR_PICKUP: S.PROCESSING,
    S.PROCESSING: ENTRY,
    S.CANCELLED: S.PENDING,
}


def next_statuses(current: str, role: str, *, entry_status: str = S.PENDING, refunded: bool = False) -> FrozenSet[str]:
    if refunded or current in LOCKED or not has_permission(role, Permission.UPDATE_ORDER_STATUS):
        return frozenset()
    allowed = set()
    if current in FORWARD:
        allowed.add(FORWARD[current])
    if current in CANCELLABLE:
        allowed.add(S.CANCELLED)
    if is_privileged(role) and current in BACKWARD:
        target = BACKWARD[current]
        allowed.add(entry_status if target == ENTRY else target)
    return frozenset(allowed)


def allowed_transitions(order, role: str) -> FrozenSet[str]:
    """Statuses ``role`` may move ``order`` to next."""
    return next_statuses(order.status, role, entry_status=order.entry_status, refunded=order.is_refunded)

