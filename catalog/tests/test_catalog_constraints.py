from decimal import Decimal

import pytest
from catalog.models import PriceTier
from catalog.tests.factories import ProductFactory, TieredProductFactory
from django.db import IntegrityError, transaction


@pytest.mark.django_db
def test_tier_lookup_is_case_insensitive():
    product = TieredProductFactory()
    tier = product.tier_price("basket")
    assert tier is not None
    assert tier.price == Decimal("4500.00")
    assert product.tier_price(" 1KG ").unit == "1kg"
    assert product.tier_price("crate") is None
    assert product.tier_price("") is None


@pytest.mark.django_db
def test_duplicate_tier_unit_rejected():
    product = TieredProductFactory(tiers=[("1kg", Decimal("800.00"))])
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            PriceTier.objects.create(product=product, unit="1kg", price=Decimal("900.00"))


@pytest.mark.django_db
def test_negative_prices_and_weights_rejected():
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ProductFactory(fixed_price=Decimal("-1.00"))
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            ProductFactory(weight_kg=Decimal("-0.5"))
