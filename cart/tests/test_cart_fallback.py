from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
from cart import local_cache
from cart.selectors import get_cart_view
from cart.services import add_line, set_quantity
from cart.types import SOURCE_LOCAL, CartLineView, CartView
from catalog.tests.factories import ProductFactory
from common.choices import PriceKind
from common.exceptions import TransientStorageError
from django.db import DatabaseError
from django.utils import timezone
from identity.types import Identity

GUEST = Identity.anonymous("guest_fallback")
ACCOUNT = Identity.account(202)


@pytest.mark.django_db
def test_writes_are_mirrored_to_local_cache():
    product = ProductFactory()

    add_line(identity=GUEST, product_id=product.id, quantity=2)

    mirrored = local_cache.load(GUEST.key)
    assert mirrored.source == SOURCE_LOCAL
    assert [(line.product_id, line.quantity) for line in mirrored.lines] == [(product.id, 2)]
    assert mirrored.subtotal == Decimal("1000.00")


@pytest.mark.django_db
def test_anonymous_write_falls_back_to_local_cache_on_storage_error():
    product = ProductFactory()
    add_line(identity=GUEST, product_id=product.id, quantity=1)

    with patch("cart.services._write_add", side_effect=DatabaseError("db down")):
        view = add_line(identity=GUEST, product_id=product.id, quantity=2)

    assert view.source == SOURCE_LOCAL
    assert view.lines[0].quantity == 3
    assert local_cache.load(GUEST.key).lines[0].quantity == 3


@pytest.mark.django_db
def test_anonymous_new_line_is_added_locally_with_its_price():
    product = ProductFactory(fixed_price=Decimal("750.00"))

    with patch("cart.services._write_add", side_effect=DatabaseError("db down")):
        view = add_line(identity=GUEST, product_id=product.id, quantity=2)

    assert view.lines[0].id < 0
    assert view.lines[0].price_kind == PriceKind.FIXED
    assert view.subtotal == Decimal("1500.00")


@pytest.mark.django_db
def test_authenticated_write_surfaces_storage_error():
    product = ProductFactory()
    add_line(identity=ACCOUNT, product_id=product.id, quantity=1)

    with patch("cart.services._write_add", side_effect=DatabaseError("db down")):
        with pytest.raises(TransientStorageError):
            add_line(identity=ACCOUNT, product_id=product.id, quantity=2)

    assert local_cache.load(ACCOUNT.key).lines[0].quantity == 1


@pytest.mark.django_db
def test_anonymous_set_quantity_falls_back_locally():
    product = ProductFactory()
    line_id = add_line(identity=GUEST, product_id=product.id, quantity=1).lines[0].id

    with patch("cart.services._write_set_quantity", side_effect=DatabaseError("db down")):
        view = set_quantity(identity=GUEST, line_id=line_id, quantity=0)

    assert view.is_empty


@pytest.mark.django_db
def test_reads_fall_back_for_anonymous_and_fail_for_authenticated():
    product = ProductFactory()
    add_line(identity=GUEST, product_id=product.id, quantity=2)

    with patch("cart.selectors.build_cart_view", side_effect=DatabaseError("db down")):
        view = get_cart_view(identity=GUEST)
        assert view.source == SOURCE_LOCAL
        assert view.item_count == 2
        with pytest.raises(TransientStorageError):
            get_cart_view(identity=ACCOUNT)


def test_entries_older_than_thirty_days_are_discarded():
    saved = timezone.now() - timedelta(days=31)
    view = CartView(
        owner_key=GUEST.key,
        lines=[CartLineView(id=1, product_id=1, quantity=1, price_kind=PriceKind.FIXED, fixed_price=Decimal("10.00"))],
    )
    local_cache.save(view, now=saved)

    assert local_cache.load(GUEST.key) is None
    assert local_cache.load(GUEST.key, now=saved + timedelta(days=29)) is None


def test_recent_entries_survive_and_keep_prices():
    saved = timezone.now() - timedelta(days=29)
    view = CartView(
        owner_key=GUEST.key,
        lines=[
            CartLineView(
                id=1,
                product_id=1,
                quantity=2,
                price_kind=PriceKind.TIER,
                tier_unit="Basket",
                tier_price=Decimal("4500.00"),
                weight_kg=Decimal("2.000"),
            )
        ],
    )
    local_cache.save(view, now=saved)

    loaded = local_cache.load(GUEST.key)
    assert loaded.subtotal == Decimal("9000.00")
    assert loaded.total_weight == Decimal("4.000")
    assert loaded.lines[0].variant_key == "basket"
