from decimal import Decimal

import pytest
from common.choices import CanceledBy, ItemRefundStatus, OrderEventType, OrderStatus, PaymentStatus, Role, Warehouse
from common.errors import (
    AllocationFailed,
    InactiveVariant,
    InsufficientStock,
    InvalidCoupon,
    InvalidInput,
    InvalidStateTransition,
    NotFound,
    PermissionDenied,
)
from inventory.models import StockItem, StockReservation
from inventory.selectors import get_available
from inventory.tests.factories import StockItemFactory
from orders.services import (
    OrderLine,
    cancel_order,
    create_order,
    request_refund,
    transition_status,
    verify_payment,
)
from orders.tests.factories import CouponFactory, advance, place_order, stocked_variant
from users.tests.factories import UserFactory

S = OrderStatus


@pytest.mark.django_db
def test_create_order_reserves_stock_and_numbers_order():
    user = UserFactory()
    variant = stocked_variant(quantity=5, price=Decimal("1000.00"))

    order = place_order(user, (variant, 2))

    assert order.number == f"ORD-{order.id:06d}"
    assert order.status == S.PENDING
    assert order.subtotal == Decimal("2000.00")
    assert order.total == Decimal("2000.00")
    item = order.items.get()
    assert item.warehouse_source == Warehouse.LORENZO
    assert item.reservation.state == StockReservation.STATE_ACTIVE
    assert item.reservation.reference == order.number
    assert get_available(variant.id) == 3
    assert order.events.get().event == OrderEventType.CREATED


@pytest.mark.django_db
def test_reservation_percentage_below_full_starts_reserved():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("1000.00"))

    order = place_order(user, (variant, 1), reservation_percentage=30, delivery_fee=Decimal("200.00"))

    assert order.status == S.RESERVED
    assert order.is_reservation is True
    assert order.total == Decimal("1200.00")
    assert order.reservation_fee == Decimal("360.00")


@pytest.mark.django_db
def test_full_percentage_is_not_a_reservation():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1), reservation_percentage=100)

    assert order.status == S.PENDING
    assert order.is_reservation is False


@pytest.mark.django_db
def test_reservation_percentage_out_of_range_is_rejected():
    with pytest.raises(InvalidInput):
        place_order(UserFactory(), (stocked_variant(), 1), reservation_percentage=0)


@pytest.mark.django_db
def test_line_split_across_warehouses_creates_one_item_per_share(settings):
    settings.INVENTORY_WAREHOUSE_PRIORITY = [Warehouse.LORENZO, Warehouse.OROQUIETA]
    user = UserFactory()
    variant = stocked_variant(quantity=2)
    StockItemFactory(variant=variant, warehouse=Warehouse.OROQUIETA, quantity=5)

    order = place_order(user, (variant, 6))

    shares = sorted((i.warehouse_source, i.quantity) for i in order.items.all())
    assert shares == [(Warehouse.LORENZO, 2), (Warehouse.OROQUIETA, 4)]
    assert order.subtotal == variant.price * 6


@pytest.mark.django_db
def test_single_warehouse_preferred_when_one_covers_line(settings):
    settings.INVENTORY_WAREHOUSE_PRIORITY = [Warehouse.LORENZO, Warehouse.OROQUIETA]
    user = UserFactory()
    variant = stocked_variant(quantity=2)
    StockItemFactory(variant=variant, warehouse=Warehouse.OROQUIETA, quantity=5)

    order = place_order(user, (variant, 4))

    assert [(i.warehouse_source, i.quantity) for i in order.items.all()] == [(Warehouse.OROQUIETA, 4)]


@pytest.mark.django_db
def test_short_line_fails_whole_order_without_reserving():
    """Line 1 is fine, line 2 is short: nothing is reserved and no order remains."""

    user = UserFactory()
    plenty = stocked_variant(quantity=10)
    scarce = stocked_variant(quantity=1)

    with pytest.raises(AllocationFailed) as exc:
        place_order(user, (plenty, 2), (scarce, 3))

    errors = exc.value.errors
    assert len(errors) == 1
    assert errors[0].line_index == 1
    assert errors[0].available == 1
    assert errors[0].code == "insufficient_stock"
    assert StockItem.objects.get(variant=plenty).reserved == 0
    assert StockItem.objects.get(variant=scarce).reserved == 0
    assert user.orders.count() == 0


@pytest.mark.django_db
def test_inactive_variant_cannot_be_ordered():
    with pytest.raises(InactiveVariant):
        place_order(UserFactory(), (stocked_variant(is_active=False), 1))


@pytest.mark.django_db
def test_online_order_requires_customer():
    variant = stocked_variant()
    with pytest.raises(InvalidInput):
        create_order(role=Role.CUSTOMER, actor=None, lines=[OrderLine(variant.id, 1)])


@pytest.mark.django_db
def test_manual_order_requires_permission_and_keeps_override_price():
    clerk = UserFactory(role=Role.INVENTORY_CLERK)
    staff = UserFactory(role=Role.STAFF)
    variant = stocked_variant(price=Decimal("1000.00"))
    lines = [OrderLine(variant.id, 1, unit_price=Decimal("850.00"))]

    with pytest.raises(PermissionDenied):
        create_order(role=clerk.role, actor=clerk, lines=lines, manual=True)
    order = create_order(role=staff.role, actor=staff, lines=lines, manual=True)

    assert order.is_manual_order is True
    assert order.user_id is None
    assert order.created_by_id == staff.id
    assert order.total == Decimal("850.00")


@pytest.mark.django_db
def test_coupon_is_redeemed_and_usage_limit_enforced():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("1000.00"))
    coupon = CouponFactory(discount_value=Decimal("20.00"), usage_limit=1)

    order = place_order(user, (variant, 1), coupon_code=coupon.code)

    assert order.coupon_discount == Decimal("200.00")
    assert order.total == Decimal("800.00")
    coupon.refresh_from_db()
    assert coupon.used_count == 1
    with pytest.raises(InvalidCoupon):
        place_order(user, (variant, 1), coupon_code=coupon.code)


@pytest.mark.django_db
def test_customer_cancel_releases_reservations():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    before = get_available(variant.id)
    order = place_order(user, (variant, 3))
    assert get_available(variant.id) == before - 3

    order = cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=user, reason="Changed my mind")

    assert order.status == S.CANCELLED
    assert order.canceled_by == CanceledBy.CUSTOMER
    assert get_available(variant.id) == before
    assert order.items.get().reservation.state == StockReservation.STATE_RELEASED


@pytest.mark.django_db
def test_cancel_twice_is_a_no_op():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    order = place_order(user, (variant, 2))
    cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=user)
    events = order.events.count()

    again = cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=user)
    transition_status(order_id=order.id, new_status=S.CANCELLED, role=Role.ADMIN)

    assert again.status == S.CANCELLED
    assert order.events.count() == events
    assert StockItem.objects.get(variant=variant).reserved == 0
    assert get_available(variant.id) == 5


@pytest.mark.django_db
def test_customer_cannot_cancel_after_processing_or_others_orders():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))

    with pytest.raises(NotFound):
        cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=UserFactory())
    advance(order, S.PROCESSING)
    with pytest.raises(InvalidStateTransition) as exc:
        cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=user)
    assert exc.value.current_state == S.PROCESSING


@pytest.mark.django_db
def test_clerk_lacks_cancel_permission():
    order = place_order(UserFactory(), (stocked_variant(), 1))

    with pytest.raises(PermissionDenied):
        cancel_order(order_id=order.id, role=Role.INVENTORY_CLERK)


@pytest.mark.django_db
def test_completion_commits_stock():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    order = place_order(user, (variant, 2))

    order = advance(order, S.PROCESSING, S.READY_FOR_PICKUP, S.COMPLETED)

    stock = StockItem.objects.get(variant=variant)
    assert order.status == S.COMPLETED
    assert order.completed_at is not None
    assert (stock.quantity, stock.reserved) == (3, 0)
    assert order.items.get().reservation.state == StockReservation.STATE_COMMITTED


@pytest.mark.django_db
def test_staff_cannot_move_backward_but_admin_can():
    order = place_order(UserFactory(), (stocked_variant(), 1))
    advance(order, S.PROCESSING, S.READY_FOR_PICKUP)

    with pytest.raises(InvalidStateTransition) as exc:
        transition_status(order_id=order.id, new_status=S.PROCESSING, role=Role.STAFF)
    assert exc.value.payload() == {
        "current_state": S.READY_FOR_PICKUP,
        "attempted": S.PROCESSING,
        "allowed": [S.CANCELLED, S.COMPLETED],
    }

    order = transition_status(order_id=order.id, new_status=S.PROCESSING, role=Role.ADMIN)
    assert order.status == S.PROCESSING


@pytest.mark.django_db
def test_completed_order_is_locked():
    order = advance(place_order(UserFactory(), (stocked_variant(), 1)), S.PROCESSING, S.READY_FOR_PICKUP, S.COMPLETED)

    for target in (S.PROCESSING, S.CANCELLED, S.PENDING):
        with pytest.raises(InvalidStateTransition) as exc:
            transition_status(order_id=order.id, new_status=target, role=Role.OWNER)
        assert exc.value.allowed == []


@pytest.mark.django_db
def test_admin_reopens_cancelled_order_and_re_reserves():
    variant = stocked_variant(quantity=5)
    order = place_order(UserFactory(), (variant, 2))
    transition_status(order_id=order.id, new_status=S.CANCELLED, role=Role.STAFF, notes="Duplicate")
    assert get_available(variant.id) == 5

    with pytest.raises(InvalidStateTransition):
        transition_status(order_id=order.id, new_status=S.PENDING, role=Role.STAFF)
    order = transition_status(order_id=order.id, new_status=S.PENDING, role=Role.ADMIN)

    assert order.status == S.PENDING
    assert order.canceled_by == ""
    assert get_available(variant.id) == 3
    assert order.events.last().event == OrderEventType.REOPENED


@pytest.mark.django_db
def test_reopen_fails_when_stock_is_gone():
    variant = stocked_variant(quantity=2)
    order = place_order(UserFactory(), (variant, 2))
    transition_status(order_id=order.id, new_status=S.CANCELLED, role=Role.ADMIN)
    StockItem.objects.filter(variant=variant).update(quantity=1)

    with pytest.raises(InsufficientStock):
        transition_status(order_id=order.id, new_status=S.PENDING, role=Role.ADMIN)

    order.refresh_from_db()
    assert order.status == S.CANCELLED
    assert StockItem.objects.get(variant=variant).reserved == 0


@pytest.mark.django_db
def test_customer_cannot_transition_status():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))

    with pytest.raises(PermissionDenied):
        transition_status(order_id=order.id, new_status=S.PROCESSING, role=Role.CUSTOMER, actor=user)


@pytest.mark.django_db
def test_refund_request_on_completed_order_keeps_status():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1), (stocked_variant(), 1))
    advance(order, S.PROCESSING, S.READY_FOR_PICKUP, S.COMPLETED)

    order = request_refund(order_id=order.id, role=Role.CUSTOMER, actor=user, item_indices=[1], reason="Scratched")

    assert order.status == S.COMPLETED
    items = list(order.items.all())
    assert items[0].refund_status == ItemRefundStatus.NONE
    assert items[1].refund_status == ItemRefundStatus.PENDING
    with pytest.raises(InvalidInput):
        request_refund(order_id=order.id, role=Role.CUSTOMER, actor=user, item_indices=[1], reason="Again")


@pytest.mark.django_db
def test_refund_request_on_cancelled_order_enters_refund_requested():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))
    cancel_order(order_id=order.id, role=Role.CUSTOMER, actor=user)

    order = request_refund(order_id=order.id, role=Role.CUSTOMER, actor=user, item_indices=[0], reason="Paid already")

    assert order.status == S.REFUND_REQUESTED
    assert order.previous_status == S.CANCELLED
    with pytest.raises(InvalidStateTransition):
        transition_status(order_id=order.id, new_status=S.PENDING, role=Role.ADMIN)


@pytest.mark.django_db
def test_refund_request_rejected_for_open_order():
    user = UserFactory()
    order = place_order(user, (stocked_variant(), 1))

    with pytest.raises(InvalidStateTransition):
        request_refund(order_id=order.id, role=Role.CUSTOMER, actor=user, item_indices=[0], reason="Too early")


@pytest.mark.django_db
def test_verify_payment_records_outcome_without_moving_status():
    staff = UserFactory(role=Role.STAFF)
    order = place_order(UserFactory(), (stocked_variant(), 1))

    order = verify_payment(order_id=order.id, role=staff.role, actor=staff, approved=False, notes="Blurry receipt")

    assert order.status == S.PENDING
    assert order.payment_status == PaymentStatus.REJECTED
    assert order.verified_by_id == staff.id
