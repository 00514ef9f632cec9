from decimal import Decimal

import pytest
from audit.models import AuditEvent
from catalog.services import create_product, deactivate_product, reactivate_product, update_product
from catalog.tests.factories import ProductFactory, ProductVariantFactory
from common.choices import AuditAction, AuditTarget, DiscountType, Role
from common.errors import DuplicateName, InvalidInput, NotFound, PermissionDenied
from orders.coupons import create_coupon, set_coupon_active, update_coupon
from orders.tests.factories import CouponFactory
from taxonomy.services import add_entry, deactivate_entry, update_entry
from taxonomy.tests.factories import ColorFactory
from users.services import change_role, create_account
from users.tests.factories import UserFactory


def actions(target_type, target_id):
    return list(
        AuditEvent.objects.filter(target_type=target_type, target_id=str(target_id))
        .order_by("id")
        .values_list("action", flat=True)
    )


@pytest.mark.django_db
def test_taxonomy_mutations_are_audited_with_actor():
    admin = UserFactory(role=Role.ADMIN)

    entry = add_entry(kind="materials", role=Role.ADMIN, name="Solid Narra", actor=admin)
    update_entry(kind="materials", role=Role.ADMIN, entry_id=entry.id, name="Solid Narra", actor=admin)
    update_entry(kind="materials", role=Role.ADMIN, entry_id=entry.id, name="Narra", actor=admin)
    deactivate_entry(kind="materials", role=Role.ADMIN, entry_id=entry.id, actor=admin)
    deactivate_entry(kind="materials", role=Role.ADMIN, entry_id=entry.id, actor=admin)

    assert actions(AuditTarget.TAXONOMY, entry.id) == [
        AuditAction.TAXONOMY_CREATED,
        AuditAction.TAXONOMY_MODIFIED,
        AuditAction.TAXONOMY_DELETED,
    ]
    modified = AuditEvent.objects.get(action=AuditAction.TAXONOMY_MODIFIED)
    assert modified.actor_id == admin.id
    assert modified.metadata == {"kind": "materials"}
    assert {"field": "name", "old": "Solid Narra", "new": "Narra"} in modified.changes


@pytest.mark.django_db
def test_rejected_taxonomy_write_leaves_no_event():
    add_entry(kind="colors", role=Role.ADMIN, name="Walnut")

    with pytest.raises(DuplicateName):
        add_entry(kind="colors", role=Role.ADMIN, name="walnut")

    assert AuditEvent.objects.filter(action=AuditAction.TAXONOMY_CREATED).count() == 1


@pytest.mark.django_db
def test_product_lifecycle_is_audited():
    admin = UserFactory(role=Role.ADMIN)
    ColorFactory(name="Walnut")

    product = create_product(
        role=Role.ADMIN,
        name="Narra Bench",
        category="chairs",
        base_price="3000",
        variants=[{"size": None, "color": "Walnut", "price": "3000.00"}],
        actor=admin,
    )
    update_product(role=Role.ADMIN, product_id=product.id, base_price="3200", actor=admin)
    deactivate_product(role=Role.ADMIN, product_id=product.id, actor=admin)
    reactivate_product(role=Role.ADMIN, product_id=product.id, actor=admin)

    assert actions(AuditTarget.PRODUCT, product.id) == [
        AuditAction.PRODUCT_CREATED,
        AuditAction.PRODUCT_MODIFIED,
        AuditAction.PRODUCT_DELETED,
        AuditAction.PRODUCT_REACTIVATED,
    ]
    created = AuditEvent.objects.get(action=AuditAction.PRODUCT_CREATED)
    assert created.metadata["variants"] == ["one-size-walnut"]
    modified = AuditEvent.objects.get(action=AuditAction.PRODUCT_MODIFIED)
    assert modified.changes == [{"field": "base_price", "old": "3000.00", "new": "3200.00"}]


@pytest.mark.django_db
def test_repeated_deactivation_is_recorded_once():
    product = ProductVariantFactory(product=ProductFactory()).product

    deactivate_product(role=Role.ADMIN, product_id=product.id)
    deactivate_product(role=Role.ADMIN, product_id=product.id)

    assert actions(AuditTarget.PRODUCT, product.id) == [AuditAction.PRODUCT_DELETED]


@pytest.mark.django_db
def test_account_creation_and_role_change_are_audited():
    owner = UserFactory(role=Role.OWNER)

    user = create_account(
        role=Role.OWNER,
        new_role=Role.STAFF,
        username="joy",
        email="joy@example.com",
        password="StrongPass123!",
        actor=owner,
    )
    change_role(role=Role.OWNER, user_id=user.id, new_role=Role.ADMIN, actor=owner)

    user.refresh_from_db()
    assert user.role == Role.ADMIN
    assert actions(AuditTarget.USER, user.id) == [AuditAction.ACCOUNT_CREATED, AuditAction.ROLE_CHANGED]
    changed = AuditEvent.objects.get(action=AuditAction.ROLE_CHANGED)
    assert changed.changes == [{"field": "role", "old": Role.STAFF, "new": Role.ADMIN}]
    assert changed.actor_id == owner.id


@pytest.mark.django_db
@pytest.mark.parametrize(
    "caller_role,current,new_role",
    [
        (Role.STAFF, Role.CUSTOMER, Role.INVENTORY_CLERK),
        (Role.ADMIN, Role.ADMIN, Role.STAFF),
        (Role.ADMIN, Role.STAFF, Role.ADMIN),
    ],
)
def test_role_change_respects_hierarchy(caller_role, current, new_role):
    caller = UserFactory(role=caller_role)
    target = UserFactory(role=current)

    with pytest.raises(PermissionDenied):
        change_role(role=caller_role, user_id=target.id, new_role=new_role, actor=caller)

    target.refresh_from_db()
    assert target.role == current
    assert not AuditEvent.objects.exists()


@pytest.mark.django_db
def test_role_change_rejects_self_and_unknown_inputs():
    owner = UserFactory(role=Role.OWNER)

    with pytest.raises(PermissionDenied):
        change_role(role=Role.OWNER, user_id=owner.id, new_role=Role.STAFF, actor=owner)
    with pytest.raises(InvalidInput):
        change_role(role=Role.OWNER, user_id=owner.id, new_role="superuser", actor=owner)
    with pytest.raises(NotFound):
        change_role(role=Role.OWNER, user_id=999999, new_role=Role.STAFF, actor=owner)


@pytest.mark.django_db
def test_coupon_management_is_audited():
    admin = UserFactory(role=Role.ADMIN)

    coupon = create_coupon(
        role=Role.ADMIN,
        actor=admin,
        code=" sala10 ",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10.00"),
    )
    update_coupon(role=Role.ADMIN, coupon_id=coupon.id, changes={"discount_value": Decimal("15.00")}, actor=admin)
    update_coupon(role=Role.ADMIN, coupon_id=coupon.id, changes={"discount_value": Decimal("15.00")}, actor=admin)
    set_coupon_active(role=Role.ADMIN, coupon_id=coupon.id, active=False, actor=admin)
    set_coupon_active(role=Role.ADMIN, coupon_id=coupon.id, active=True, actor=admin)

    assert coupon.code == "SALA10"
    assert actions(AuditTarget.COUPON, coupon.id) == [
        AuditAction.COUPON_CREATED,
        AuditAction.COUPON_MODIFIED,
        AuditAction.COUPON_DEACTIVATED,
        AuditAction.COUPON_ACTIVATED,
    ]
    modified = AuditEvent.objects.get(action=AuditAction.COUPON_MODIFIED)
    assert modified.changes == [{"field": "discount_value", "old": "10.00", "new": "15.00"}]


@pytest.mark.django_db
def test_coupon_rules():
    CouponFactory(code="SALE")

    with pytest.raises(DuplicateName):
        create_coupon(role=Role.ADMIN, code="sale", discount_type=DiscountType.FIXED, discount_value=Decimal("50"))
    with pytest.raises(InvalidInput):
        create_coupon(
            role=Role.ADMIN, code="HALF", discount_type=DiscountType.PERCENTAGE, discount_value=Decimal("150")
        )
    with pytest.raises(InvalidInput):
        create_coupon(role=Role.ADMIN, code="FREE", discount_type=DiscountType.FIXED, discount_value=Decimal("0"))
    with pytest.raises(PermissionDenied):
        create_coupon(role=Role.STAFF, code="STAFF", discount_type=DiscountType.FIXED, discount_value=Decimal("5"))

    assert not AuditEvent.objects.exists()
