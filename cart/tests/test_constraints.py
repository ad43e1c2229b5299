from decimal import Decimal

import pytest
from cart.models import CartLine
from cart.tests.factories import CartFactory, CartLineFactory
from catalog.tests.factories import ProductFactory
from common.choices import PriceKind
from django.db import IntegrityError, transaction


@pytest.mark.django_db
def test_unique_price_variant_per_cart():
    line = CartLineFactory()
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartLineFactory(cart=line.cart, product=line.product)


@pytest.mark.django_db
def test_quantity_must_be_positive():
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartLineFactory(quantity=0)


@pytest.mark.django_db
def test_line_cannot_carry_both_fixed_and_tier_price():
    cart = CartFactory()
    product = ProductFactory()
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartLine.objects.create(
                cart=cart,
                product=product,
                price_kind=PriceKind.TIER,
                fixed_price=Decimal("500.00"),
                tier_unit="1kg",
                tier_price=Decimal("800.00"),
                variant_key="1kg",
            )


@pytest.mark.django_db
def test_line_must_carry_a_price():
    cart = CartFactory()
    product = ProductFactory()
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartLine.objects.create(cart=cart, product=product, price_kind=PriceKind.FIXED)
    with pytest.raises(IntegrityError):
        with transaction.atomic():
            CartLine.objects.create(
                cart=cart, product=product, price_kind=PriceKind.TIER, tier_price=Decimal("800.00")
            )
