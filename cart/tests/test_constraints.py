import pytest
from cart.models import Cart, CartItem
from cart.services import line_key
from cart.tests.factories import CartFactory
from catalog.services import generate_variant_id
from catalog.tests.factories import ProductVariantFactory
from django.db import IntegrityError


@pytest.mark.django_db
def test_unique_line_key_per_cart_constraint():
    cart = CartFactory()
    variant = ProductVariantFactory()
    key = line_key(variant.product_id, variant.code)
    CartItem.objects.create(
        cart=cart, line_key=key, product=variant.product, variant=variant, quantity=1, unit_price=variant.price
    )

    with pytest.raises(IntegrityError):
        CartItem.objects.create(
            cart=cart, line_key=key, product=variant.product, variant=variant, quantity=2, unit_price=variant.price
        )


@pytest.mark.django_db
def test_quantity_positive_constraint():
    cart = CartFactory()
    variant = ProductVariantFactory()

    with pytest.raises(IntegrityError):
        CartItem.objects.create(
            cart=cart,
            line_key=line_key(variant.product_id, variant.code),
            product=variant.product,
            variant=variant,
            quantity=0,
            unit_price=variant.price,
        )


@pytest.mark.django_db
def test_cart_needs_user_or_session():
    with pytest.raises(IntegrityError):
        Cart.objects.create(user=None, session_id=None)


def test_line_key_is_deterministic():
    assert line_key(4, "large-walnut") == "4|v|large-walnut"
    assert line_key(4, generate_variant_id(" large ", "Walnut")) == "4|v|large-walnut"
    assert line_key(4, "large-walnut") == line_key(4, "large-walnut")


def test_indexes_defined_for_cart():
    cart_index_fields = [tuple(idx.fields) for idx in Cart._meta.indexes]
    assert ("user", "status") in cart_index_fields
    assert ("session_id", "status") in cart_index_fields
