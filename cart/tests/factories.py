import factory
from cart.models import Cart, CartLine
from common.choices import PriceKind
from django.contrib.auth import get_user_model
from factory.django import DjangoModelFactory


class UserFactory(DjangoModelFactory):
    class Meta:
        model = get_user_model()

    username = factory.Sequence(lambda n: f"shopper{n}")
    email = factory.Faker("email")
    password = factory.PostGenerationMethodCall("set_password", "pass")


class CartFactory(DjangoModelFactory):
    class Meta:
        model = Cart

    owner_key = factory.Sequence(lambda n: f"anon:guest_test_{n}")


class CartLineFactory(DjangoModelFactory):
    """Fixed-price line at the product's own price."""

    class Meta:
        model = CartLine

    cart = factory.SubFactory(CartFactory)
    product = factory.SubFactory("catalog.tests.factories.ProductFactory")
    quantity = 1
    price_kind = PriceKind.FIXED
    fixed_price = factory.LazyAttribute(lambda o: o.product.fixed_price)
    tier_unit = ""
    tier_price = None
    variant_key = ""
