import factory
from cart.models import Cart, CartItem
from cart.services import line_key
from factory.django import DjangoModelFactory


class CartFactory(DjangoModelFactory):
    class Meta:
        model = Cart

    user = factory.SubFactory("users.tests.factories.UserFactory")
    status = Cart.STATUS_ACTIVE


class CartItemFactory(DjangoModelFactory):
    class Meta:
        model = CartItem

    cart = factory.SubFactory(CartFactory)
    variant = factory.SubFactory("catalog.tests.factories.ProductVariantFactory")
    product = factory.LazyAttribute(lambda o: o.variant.product)
    line_key = factory.LazyAttribute(lambda o: line_key(o.variant.product_id, o.variant.code))
    color = factory.LazyAttribute(lambda o: o.variant.color.name)
    size = factory.LazyAttribute(lambda o: o.variant.size or "")
    quantity = 1
    unit_price = factory.LazyAttribute(lambda o: o.variant.price)
