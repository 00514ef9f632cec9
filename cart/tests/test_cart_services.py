from decimal import Decimal

import pytest
from cart.models import Cart, CartItem
from cart.selectors import cart_totals, get_active_cart_for_user
from cart.services import (
    add_line,
    apply_coupon,
    checkout_cart,
    clear_cart,
    merge_guest_cart_to_user,
    update_quantity,
)
from catalog.tests.factories import ProductVariantFactory
from common.choices import OrderStatus, Role, Warehouse
from common.errors import (
    AllocationFailed,
    CartFull,
    InactiveProduct,
    InactiveVariant,
    InsufficientStock,
    InvalidCoupon,
    VariantNotFound,
)
from inventory.models import StockItem
from inventory.tests.factories import StockItemFactory
from orders.tests.factories import CouponFactory
from users.tests.factories import UserFactory


def stocked_variant(quantity=10, **kwargs):
    variant = ProductVariantFactory(**kwargs)
    StockItemFactory(variant=variant, warehouse=Warehouse.LORENZO, quantity=quantity)
    return variant


@pytest.mark.django_db
def test_add_line_snapshots_price_and_merges_repeat_adds():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("1500.00"))

    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=2)
    variant.price = Decimal("1800.00")
    variant.save(update_fields=["price", "updated_at"])
    item = add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=3)

    assert item.quantity == 5
    assert item.unit_price == Decimal("1500.00")
    assert CartItem.objects.filter(cart__user=user).count() == 1


@pytest.mark.django_db
def test_add_line_derives_code_from_size_and_color():
    user = UserFactory()
    variant = stocked_variant()

    item = add_line(
        user=user, product_id=variant.product_id, size=variant.size, color=variant.color.name, quantity=1
    )

    assert item.variant_id == variant.id


@pytest.mark.django_db
def test_add_line_never_reserves_stock():
    user = UserFactory()
    variant = stocked_variant(quantity=4)

    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=4)

    stock = StockItem.objects.get(variant=variant)
    assert stock.reserved == 0


@pytest.mark.django_db
def test_add_line_counts_existing_quantity_against_availability():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=3)

    with pytest.raises(InsufficientStock) as exc:
        add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=3)

    assert exc.value.available == 5
    assert exc.value.requested == 6
    assert CartItem.objects.get(cart__user=user).quantity == 3


@pytest.mark.django_db
def test_add_line_rejects_inactive_product_and_variant():
    user = UserFactory()
    hidden = stocked_variant(product__is_active=False)
    retired = stocked_variant(is_active=False)

    with pytest.raises(InactiveProduct):
        add_line(user=user, product_id=hidden.product_id, variant_id=hidden.code, quantity=1)
    with pytest.raises(InactiveVariant):
        add_line(user=user, product_id=retired.product_id, variant_id=retired.code, quantity=1)


@pytest.mark.django_db
def test_add_line_unknown_variant_code():
    user = UserFactory()
    variant = stocked_variant()

    with pytest.raises(VariantNotFound):
        add_line(user=user, product_id=variant.product_id, variant_id="xl-purple", quantity=1)


@pytest.mark.django_db
def test_line_limit_applies_to_new_lines_only(settings):
    settings.CART_MAX_LINES = 2
    user = UserFactory()
    first, second, third = stocked_variant(), stocked_variant(), stocked_variant()
    add_line(user=user, product_id=first.product_id, variant_id=first.code, quantity=1)
    add_line(user=user, product_id=second.product_id, variant_id=second.code, quantity=1)

    with pytest.raises(CartFull) as exc:
        add_line(user=user, product_id=third.product_id, variant_id=third.code, quantity=1)
    assert exc.value.payload() == {"limit": 2}

    # merging into an existing line is still allowed
    item = add_line(user=user, product_id=first.product_id, variant_id=first.code, quantity=1)
    assert item.quantity == 2


@pytest.mark.django_db
def test_update_quantity_oversell_leaves_line_unchanged():
    user = UserFactory()
    variant = stocked_variant(quantity=3)
    item = add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=2)

    outcome = update_quantity(user=user, line_key=item.line_key, quantity=7)

    assert outcome.applied is False
    assert outcome.available == 3
    item.refresh_from_db()
    assert item.quantity == 2


@pytest.mark.django_db
def test_update_quantity_zero_removes_line():
    user = UserFactory()
    variant = stocked_variant()
    item = add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=2)

    outcome = update_quantity(user=user, line_key=item.line_key, quantity=0)

    assert outcome.applied is True
    assert not CartItem.objects.filter(id=item.id).exists()


@pytest.mark.django_db
def test_merge_guest_cart_caps_at_availability():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=3)
    add_line(session_id="guest-1", product_id=variant.product_id, variant_id=variant.code, quantity=4)

    cart = merge_guest_cart_to_user(session_id="guest-1", user=user)

    assert cart.items.get().quantity == 5
    assert not Cart.objects.filter(session_id="guest-1").exists()


@pytest.mark.django_db
def test_coupon_below_minimum_is_rejected():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("1000.00"))
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=1)
    coupon = CouponFactory(min_purchase=Decimal("5000.00"))

    with pytest.raises(InvalidCoupon) as exc:
        apply_coupon(user=user, code=coupon.code)

    assert "5,000.00" in exc.value.message


@pytest.mark.django_db
def test_cart_totals_apply_percentage_coupon():
    user = UserFactory()
    variant = stocked_variant(price=Decimal("2000.00"))
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=2)
    coupon = CouponFactory(discount_value=Decimal("10.00"), max_discount=Decimal("250.00"))

    apply_coupon(user=user, code=coupon.code.lower())
    totals = cart_totals(cart=get_active_cart_for_user(user=user))

    assert totals["subtotal"] == Decimal("4000.00")
    assert totals["discount"] == Decimal("250.00")
    assert totals["total"] == Decimal("3750.00")


@pytest.mark.django_db
def test_clear_cart_drops_lines_and_coupon():
    user = UserFactory()
    variant = stocked_variant()
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=1)
    apply_coupon(user=user, code=CouponFactory().code)

    clear_cart(user=user)

    cart = get_active_cart_for_user(user=user)
    assert cart.items.count() == 0
    assert cart.coupon_id is None


@pytest.mark.django_db
def test_checkout_creates_order_at_snapshot_price_and_reserves():
    user = UserFactory()
    variant = stocked_variant(quantity=5, price=Decimal("1200.00"))
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=2)
    variant.price = Decimal("1500.00")
    variant.save(update_fields=["price", "updated_at"])

    order = checkout_cart(user=user, role=Role.CUSTOMER)

    assert order.status == OrderStatus.PENDING
    assert order.subtotal == Decimal("2400.00")
    assert order.items.get().unit_price == Decimal("1200.00")
    assert StockItem.objects.get(variant=variant).reserved == 2
    assert not Cart.objects.filter(user=user, status=Cart.STATUS_ACTIVE, items__isnull=False).exists()
    assert Cart.objects.filter(user=user, status=Cart.STATUS_ORDERED).count() == 1


@pytest.mark.django_db
def test_checkout_failure_keeps_cart_and_stock():
    user = UserFactory()
    variant = stocked_variant(quantity=5)
    add_line(user=user, product_id=variant.product_id, variant_id=variant.code, quantity=4)
    StockItem.objects.filter(variant=variant).update(quantity=2)

    with pytest.raises(AllocationFailed) as exc:
        checkout_cart(user=user, role=Role.CUSTOMER)

    assert exc.value.errors[0].available == 2
    cart = Cart.objects.get(user=user, status=Cart.STATUS_ACTIVE)
    assert cart.items.get().quantity == 4
    assert StockItem.objects.get(variant=variant).reserved == 0
    assert user.orders.count() == 0
