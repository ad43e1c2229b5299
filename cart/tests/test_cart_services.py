from decimal import Decimal

import pytest
from cart.models import Cart, CartLine
from cart.selectors import get_cart_view
from cart.services import add_line, clear_cart, merge_guest_cart, remove_line, set_quantity
from catalog.tests.factories import ProductFactory, TieredProductFactory
from common.choices import MergeOutcome, PriceKind
from common.exceptions import NotFound, UnresolvablePrice, ValidationError
from identity.types import Identity

GUEST = Identity.anonymous("guest_test_a")
ACCOUNT = Identity.account(101)


@pytest.mark.django_db
def test_add_line_at_fixed_price_recomputes_totals():
    product = ProductFactory(fixed_price=Decimal("500.00"), weight_kg=Decimal("0.500"))

    view = add_line(identity=GUEST, product_id=product.id, quantity=2)

    assert view.subtotal == Decimal("1000.00")
    assert view.item_count == 2
    assert view.total_weight == Decimal("1.000")
    line = view.lines[0]
    assert line.price_kind == PriceKind.FIXED
    assert line.unit_price == Decimal("500.00")
    assert Cart.objects.get(owner_key=GUEST.key).lines.count() == 1


@pytest.mark.django_db
def test_adding_the_same_product_again_increments_quantity():
    product = ProductFactory()

    add_line(identity=GUEST, product_id=product.id, quantity=1)
    view = add_line(identity=GUEST, product_id=product.id, quantity=3)

    assert len(view.lines) == 1
    assert view.lines[0].quantity == 4


@pytest.mark.django_db
def test_tiers_of_one_product_are_separate_lines():
    product = TieredProductFactory()

    add_line(identity=GUEST, product_id=product.id, quantity=1, tier_unit="1kg")
    view = add_line(identity=GUEST, product_id=product.id, quantity=1, tier_unit="basket")

    assert sorted(line.tier_unit for line in view.lines) == ["1kg", "Basket"]
    assert view.subtotal == Decimal("5300.00")
    assert all(line.fixed_price is None for line in view.lines)


@pytest.mark.django_db
def test_unknown_tier_and_missing_price_are_rejected():
    tiered = TieredProductFactory()

    with pytest.raises(UnresolvablePrice):
        add_line(identity=GUEST, product_id=tiered.id, quantity=1, tier_unit="crate")
    with pytest.raises(UnresolvablePrice):
        add_line(identity=GUEST, product_id=tiered.id, quantity=1)
    assert not CartLine.objects.exists()


@pytest.mark.django_db
def test_add_line_validates_quantity_and_product():
    product = ProductFactory()
    with pytest.raises(ValidationError):
        add_line(identity=GUEST, product_id=product.id, quantity=0)
    with pytest.raises(NotFound):
        add_line(identity=GUEST, product_id=999999, quantity=1)


@pytest.mark.django_db
def test_set_quantity_zero_removes_line():
    product = ProductFactory()
    view = add_line(identity=ACCOUNT, product_id=product.id, quantity=2)
    line_id = view.lines[0].id

    view = set_quantity(identity=ACCOUNT, line_id=line_id, quantity=5)
    assert view.lines[0].quantity == 5
    assert view.subtotal == Decimal("2500.00")

    view = set_quantity(identity=ACCOUNT, line_id=line_id, quantity=0)
    assert view.is_empty
    assert view.subtotal == Decimal("0.00")


@pytest.mark.django_db
def test_set_quantity_on_another_owners_line_is_not_found():
    product = ProductFactory()
    line_id = add_line(identity=GUEST, product_id=product.id, quantity=1).lines[0].id

    with pytest.raises(NotFound):
        set_quantity(identity=ACCOUNT, line_id=line_id, quantity=3)


@pytest.mark.django_db
def test_remove_line_is_idempotent_and_clear_empties_cart():
    first, second = ProductFactory(), ProductFactory()
    add_line(identity=GUEST, product_id=first.id, quantity=1)
    view = add_line(identity=GUEST, product_id=second.id, quantity=1)
    line_id = view.lines[0].id

    remove_line(identity=GUEST, line_id=line_id)
    view = remove_line(identity=GUEST, line_id=line_id)
    assert len(view.lines) == 1

    view = clear_cart(identity=GUEST)
    assert view.is_empty
    assert get_cart_view(identity=GUEST).is_empty


@pytest.mark.django_db
def test_merge_coalesces_lines_per_product_and_tier():
    shared = TieredProductFactory()
    guest_only = ProductFactory()
    add_line(identity=ACCOUNT, product_id=shared.id, quantity=1, tier_unit="1kg")
    add_line(identity=GUEST, product_id=shared.id, quantity=2, tier_unit="1KG")
    add_line(identity=GUEST, product_id=shared.id, quantity=1, tier_unit="basket")
    add_line(identity=GUEST, product_id=guest_only.id, quantity=3)

    outcome = merge_guest_cart(anonymous_token=GUEST.value, account_id=ACCOUNT.value)

    assert outcome == MergeOutcome.MERGED
    lines = {(line.product_id, line.variant_key): line.quantity for line in get_cart_view(identity=ACCOUNT).lines}
    assert lines == {(shared.id, "1kg"): 3, (shared.id, "basket"): 1, (guest_only.id, ""): 3}
    assert not Cart.objects.filter(owner_key=GUEST.key).exists()


@pytest.mark.django_db
def test_merge_into_account_without_cart_converts_guest_cart():
    product = ProductFactory()
    add_line(identity=GUEST, product_id=product.id, quantity=2)
    guest_cart_id = Cart.objects.get(owner_key=GUEST.key).id

    outcome = merge_guest_cart(anonymous_token=GUEST.value, account_id=ACCOUNT.value)

    assert outcome == MergeOutcome.CONVERTED
    assert Cart.objects.get(owner_key=ACCOUNT.key).id == guest_cart_id


@pytest.mark.django_db
def test_merge_with_nothing_to_move_is_a_no_op():
    product = ProductFactory()
    add_line(identity=ACCOUNT, product_id=product.id, quantity=1)

    assert merge_guest_cart(anonymous_token="guest_unknown", account_id=ACCOUNT.value) == MergeOutcome.NO_GUEST_ITEMS
    assert get_cart_view(identity=ACCOUNT).lines[0].quantity == 1
