import re

import pytest
from catalog.tests.factories import ProductVariantFactory
from common.choices import Role, Warehouse
from common.errors import InsufficientStock, InvalidAdjustment, InvalidInput, NotFound, PermissionDenied
from django.db import IntegrityError
from inventory.models import InventoryBatch, StockItem, StockReservation
from inventory.selectors import available_by_warehouse, get_available
from inventory.services import (
    adjust_stock,
    commit,
    commit_reservation,
    generate_batch_id,
    release,
    release_reservation,
    reserve,
)
from inventory.tests.factories import StockItemFactory

L, O = Warehouse.LORENZO, Warehouse.OROQUIETA


@pytest.mark.django_db
def test_available_sums_quantity_minus_reserved_across_warehouses():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=2)
    StockItemFactory(variant=variant, warehouse=O, quantity=4, reserved=0)

    assert get_available(variant.id) == 7
    assert get_available(variant.id, L) == 3
    assert available_by_warehouse([variant.id]) == {variant.id: {L: 3, O: 4}}
    assert get_available(ProductVariantFactory().id) == 0


@pytest.mark.django_db
def test_reserve_holds_units_and_records_reservation():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5)

    res = reserve(variant_id=variant.id, warehouse=L, quantity=3, reference="ORD-000001")

    stock = StockItem.objects.get(variant=variant)
    assert (stock.quantity, stock.reserved) == (5, 3)
    assert res.state == StockReservation.STATE_ACTIVE
    assert res.reference == "ORD-000001"


@pytest.mark.django_db
def test_reserve_beyond_available_fails_without_side_effects():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=3)

    with pytest.raises(InsufficientStock) as exc:
        reserve(variant_id=variant.id, warehouse=L, quantity=3)

    assert exc.value.available == 2
    assert exc.value.payload()["warehouse"] == L
    assert StockItem.objects.get(variant=variant).reserved == 3
    assert StockReservation.objects.count() == 0


@pytest.mark.django_db
def test_reserve_at_warehouse_without_stock_row():
    variant = ProductVariantFactory()

    with pytest.raises(InsufficientStock) as exc:
        reserve(variant_id=variant.id, warehouse=O, quantity=1)
    assert exc.value.available == 0


@pytest.mark.parametrize("qty", [0, -2])
@pytest.mark.django_db
def test_reserve_rejects_non_positive_quantity(qty):
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5)

    with pytest.raises(InvalidInput):
        reserve(variant_id=variant.id, warehouse=L, quantity=qty)


@pytest.mark.django_db
def test_release_floors_reserved_at_zero():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=2)

    release(variant_id=variant.id, warehouse=L, quantity=4)

    assert StockItem.objects.get(variant=variant).reserved == 0


@pytest.mark.django_db
def test_commit_deducts_quantity_and_reserved():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=3)

    commit(variant_id=variant.id, warehouse=L, quantity=3)

    stock = StockItem.objects.get(variant=variant)
    assert (stock.quantity, stock.reserved) == (2, 0)
    with pytest.raises(InvalidAdjustment):
        commit(variant_id=variant.id, warehouse=L, quantity=9)


@pytest.mark.django_db
def test_settling_a_reservation_is_idempotent():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5)
    first = reserve(variant_id=variant.id, warehouse=L, quantity=2)
    second = reserve(variant_id=variant.id, warehouse=L, quantity=1)

    assert release_reservation(reservation_id=first.id) is True
    assert release_reservation(reservation_id=first.id) is False
    assert commit_reservation(reservation_id=first.id) is False
    assert commit_reservation(reservation_id=second.id) is True

    stock = StockItem.objects.get(variant=variant)
    assert (stock.quantity, stock.reserved) == (4, 0)
    assert release_reservation(reservation_id=999999) is False


@pytest.mark.django_db
def test_adjust_stock_writes_signed_batch_and_keeps_reserved():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=2)

    adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=12, role=Role.INVENTORY_CLERK, notes="Delivery")
    adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=10, role=Role.INVENTORY_CLERK)
    adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=10, role=Role.INVENTORY_CLERK)

    stock = StockItem.objects.get(variant=variant)
    assert (stock.quantity, stock.reserved) == (10, 2)
    batches = list(InventoryBatch.objects.filter(stock_item=stock).order_by("id"))
    assert [b.quantity for b in batches] == [7, -2]
    assert batches[0].notes == "Delivery"
    assert batches[1].notes == "Removed 2 units"


@pytest.mark.django_db
def test_adjust_stock_creates_missing_row():
    variant = ProductVariantFactory()

    item = adjust_stock(variant_id=variant.id, warehouse=O, new_quantity=4, role=Role.ADMIN)

    assert (item.warehouse, item.quantity, item.reserved) == (O, 4, 0)
    assert get_available(variant.id) == 4


@pytest.mark.django_db
def test_adjust_stock_rejects_reserved_above_quantity():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5, reserved=4)

    with pytest.raises(InvalidAdjustment):
        adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=3, role=Role.ADMIN)
    with pytest.raises(InvalidInput):
        adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=-1, role=Role.ADMIN)

    stock = StockItem.objects.get(variant=variant)
    assert (stock.quantity, stock.reserved) == (5, 4)


@pytest.mark.django_db
def test_adjust_stock_rejects_unknown_variant():
    with pytest.raises(NotFound):
        adjust_stock(variant_id=999999, warehouse=L, new_quantity=5, role=Role.ADMIN)

    assert StockItem.objects.count() == 0
    assert InventoryBatch.objects.count() == 0


@pytest.mark.django_db
def test_ledger_rejects_warehouses_outside_the_closed_set():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5)

    with pytest.raises(InvalidInput):
        adjust_stock(variant_id=variant.id, warehouse="manila", new_quantity=5, role=Role.ADMIN)
    with pytest.raises(InvalidInput):
        reserve(variant_id=variant.id, warehouse="manila", quantity=1)
    with pytest.raises(InvalidInput):
        release(variant_id=variant.id, warehouse="manila", quantity=1)
    with pytest.raises(InvalidInput):
        commit(variant_id=variant.id, warehouse="manila", quantity=1)

    assert list(StockItem.objects.values_list("warehouse", flat=True)) == [L]
    assert get_available(variant.id) == 5


@pytest.mark.django_db
def test_adjust_stock_requires_manage_inventory():
    variant = ProductVariantFactory()

    for role in (Role.CUSTOMER, Role.STAFF, "intern"):
        with pytest.raises(PermissionDenied):
            adjust_stock(variant_id=variant.id, warehouse=L, new_quantity=1, role=role)


@pytest.mark.django_db
def test_reserved_cannot_exceed_quantity_at_database_level():
    variant = ProductVariantFactory()

    with pytest.raises(IntegrityError):
        StockItem.objects.create(variant=variant, warehouse=L, quantity=1, reserved=2)


def test_batch_id_format():
    assert re.fullmatch(r"BATCH-\d{8}-\d{6}-\d{3}", generate_batch_id())


@pytest.mark.django_db
def test_sequential_reserves_never_oversell():
    variant = ProductVariantFactory()
    StockItemFactory(variant=variant, warehouse=L, quantity=5)

    granted = 0
    for qty in (3, 3, 2, 1):
        try:
            granted += reserve(variant_id=variant.id, warehouse=L, quantity=qty).quantity
        except InsufficientStock:
            pass

    assert granted == 5
    stock = StockItem.objects.get(variant=variant)
    assert 0 <= stock.reserved <= stock.quantity
    assert stock.reserved == 5
