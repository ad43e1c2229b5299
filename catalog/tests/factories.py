from decimal import Decimal

import factory
from catalog.models import PriceTier, Product
from factory import Faker
from factory.django import DjangoModelFactory


class ProductFactory(DjangoModelFactory):
    class Meta:
        model = Product

    title = Faker("sentence", nb_words=3)
    slug = factory.Sequence(lambda n: f"product-{n}")
    sku = factory.Sequence(lambda n: f"SKU-{n:05d}")
    status = Product.STATUS_PUBLISHED
    weight_kg = Decimal("0.500")
    has_fixed_price = True
    fixed_price = Decimal("500.00")


class TieredProductFactory(ProductFactory):
    """Product sold only through price tiers (no fixed price)."""

    has_fixed_price = False
    fixed_price = None

    @factory.post_generation
    def tiers(self, create, extracted, **kwargs):
        if not create:
            return
        if extracted is None:
            extracted = [("1kg", Decimal("800.00")), ("Basket", Decimal("4500.00"))]
        for unit, price in extracted:
            PriceTier.objects.create(product=self, unit=unit, price=price)


class PriceTierFactory(DjangoModelFactory):
    class Meta:
        model = PriceTier

    product = factory.SubFactory(TieredProductFactory, tiers=[])
    unit = factory.Sequence(lambda n: f"unit-{n}")
    price = Decimal("1000.00")
