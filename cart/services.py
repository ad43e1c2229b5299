"""Cart services: write-through mutations with a local resilience mirror.

Each mutation takes the resolved `Identity` explicitly, writes to storage in
its own transaction, then mirrors the fresh cart into `local_cache`. When the
write fails with a storage error, anonymous carts are mutated in the mirror
instead; authenticated carts surface `TransientStorageError`.
"""

import logging
from decimal import Decimal
from typing import Callable

from catalog.models import Product
from common.choices import MergeOutcome, PriceKind
from common.exceptions import NotFound, TransientStorageError, UnresolvablePrice, ValidationError
from django.db import DatabaseError, transaction
from identity.types import Identity

from . import local_cache
from .models import Cart, CartLine
from .selectors import build_cart_view
from .types import SOURCE_LOCAL, CartLineView, CartView

logger = logging.getLogger("freshcart.cart")


def _check_quantity(quantity: int, *, allow_zero: bool = False) -> None:
    floor = 0 if allow_zero else 1
    if int(quantity) < floor:
        raise ValidationError("Quantity must be positive", code="invalid_quantity")


def _get_product(product_id: int) -> Product:
    product = Product.objects.prefetch_related("price_tiers").filter(id=product_id).first()
    if product is None:
        raise NotFound("Product not found.")
    return product


def resolve_line_price(product: Product, tier_unit: str | None = None) -> dict:
    """Return the price fields for a new line of `product`.

    A requested tier must be one of the product's declared tiers; without a
    tier the product must carry a fixed price.
    """

    if tier_unit:
        tier = product.tier_price(tier_unit)
        if tier is None:
            raise UnresolvablePrice(f"'{tier_unit}' is not a price tier of {product.title}")
        return {
            "price_kind": PriceKind.TIER,
            "fixed_price": None,
            "tier_unit": tier.unit,
            "tier_price": tier.price,
            "variant_key": tier.unit.strip().lower(),
        }
    if product.has_fixed_price and product.fixed_price is not None:
        return {
            "price_kind": PriceKind.FIXED,
            "fixed_price": product.fixed_price,
            "tier_unit": "",
            "tier_price": None,
            "variant_key": "",
        }
    raise UnresolvablePrice(f"Select a price tier for {product.title}")


def _mirror(view: CartView) -> CartView:
    local_cache.save(view)
    return view


def _apply_locally(identity: Identity, exc: DatabaseError, mutate: Callable[[list], list], *, action: str) -> CartView:
    """Fallback for a failed durable write: anonymous carts mutate the mirror."""

    if not identity.is_anonymous:
        logger.warning(
            "cart.write_failed",
            extra={"event": "cart.write_failed", "owner_key": identity.key, "action": action, "error": str(exc)},
        )
        raise TransientStorageError("Cart storage is unavailable, please retry") from exc
    current = local_cache.load(identity.key) or CartView(owner_key=identity.key, source=SOURCE_LOCAL)
    view = CartView(owner_key=identity.key, lines=mutate(list(current.lines)), source=SOURCE_LOCAL)
    local_cache.save(view)
    logger.warning(
        "cart.local_fallback",
        extra={"event": "cart.local_fallback", "owner_key": identity.key, "action": action, "error": str(exc)},
    )
    return view


def _next_local_id(lines: list) -> int:
    return min([0] + [line.id for line in lines]) - 1


# Durable writes


@transaction.atomic
def _write_add(*, owner_key: str, product: Product, price: dict, quantity: int) -> CartView:
    cart, _ = Cart.objects.get_or_create(owner_key=owner_key)
    line, created = CartLine.objects.select_for_update().get_or_create(
        cart=cart,
        product=product,
        variant_key=price["variant_key"],
        defaults={**price, "quantity": quantity},
    )
    if not created:
        line.quantity = int(line.quantity) + int(quantity)
        line.save(update_fields=["quantity", "updated_at"])
    cart.save(update_fields=["updated_at"])
    return build_cart_view(owner_key=owner_key)


@transaction.atomic
def _write_set_quantity(*, owner_key: str, line_id: int, quantity: int) -> CartView:
    line = CartLine.objects.select_for_update().filter(id=line_id, cart__owner_key=owner_key).first()
    if line is None:
        raise NotFound("Cart line not found.")
    if quantity == 0:
        line.delete()
    else:
        line.quantity = quantity
        line.save(update_fields=["quantity", "updated_at"])
    return build_cart_view(owner_key=owner_key)


@transaction.atomic
def _write_remove(*, owner_key: str, line_id: int) -> CartView:
    CartLine.objects.filter(id=line_id, cart__owner_key=owner_key).delete()
    return build_cart_view(owner_key=owner_key)


@transaction.atomic
def _write_clear(*, owner_key: str) -> CartView:
    CartLine.objects.filter(cart__owner_key=owner_key).delete()
    return build_cart_view(owner_key=owner_key)


# Public API


def add_line(*, identity: Identity, product_id: int, quantity: int, tier_unit: str | None = None) -> CartView:
    """Add `quantity` of a product, coalescing with an existing line for the same price variant."""

    _check_quantity(quantity)
    product = price = None

    def _local_add(lines: list) -> list:
        variant_key = price["variant_key"] if price else (tier_unit or "").strip().lower()
        for line in lines:
            if line.product_id == int(product_id) and line.variant_key == variant_key:
                line.quantity = int(line.quantity) + int(quantity)
                return lines
        if product is None or price is None:
            raise TransientStorageError("Catalog is unavailable, please retry")
        lines.append(
            CartLineView(
                id=_next_local_id(lines),
                product_id=product.id,
                quantity=int(quantity),
                price_kind=price["price_kind"],
                fixed_price=price["fixed_price"],
                tier_unit=price["tier_unit"],
                tier_price=price["tier_price"],
                weight_kg=product.weight_kg or Decimal("0"),
                title=product.title,
                sku=product.sku,
            )
        )
        return lines

    try:
        product = _get_product(product_id)
        price = resolve_line_price(product, tier_unit)
        view = _write_add(owner_key=identity.key, product=product, price=price, quantity=quantity)
    except DatabaseError as exc:
        return _apply_locally(identity, exc, _local_add, action="add")
    logger.info(
        "cart.line_added",
        extra={
            "event": "cart.line_added",
            "owner_key": identity.key,
            "product_id": product.id,
            "price_kind": price["price_kind"],
            "quantity": quantity,
            "guest": identity.is_anonymous,
        },
    )
    return _mirror(view)


def set_quantity(*, identity: Identity, line_id: int, quantity: int) -> CartView:
    """Set a line's quantity; zero removes the line."""

    _check_quantity(quantity, allow_zero=True)

    def _local_set(lines: list) -> list:
        if quantity == 0:
            return [line for line in lines if line.id != int(line_id)]
        for line in lines:
            if line.id == int(line_id):
                line.quantity = int(quantity)
                return lines
        raise NotFound("Cart line not found.")

    try:
        view = _write_set_quantity(owner_key=identity.key, line_id=line_id, quantity=int(quantity))
    except DatabaseError as exc:
        return _apply_locally(identity, exc, _local_set, action="set_quantity")
    logger.info(
        "cart.line_updated",
        extra={
            "event": "cart.line_updated",
            "owner_key": identity.key,
            "line_id": line_id,
            "quantity": quantity,
            "guest": identity.is_anonymous,
        },
    )
    return _mirror(view)


def remove_line(*, identity: Identity, line_id: int) -> CartView:
    """Remove a line. Removing a line that is already gone is a no-op."""

    try:
        view = _write_remove(owner_key=identity.key, line_id=line_id)
    except DatabaseError as exc:
        return _apply_locally(
            identity, exc, lambda lines: [line for line in lines if line.id != int(line_id)], action="remove"
        )
    logger.info(
        "cart.line_removed",
        extra={"event": "cart.line_removed", "owner_key": identity.key, "line_id": line_id, "guest": identity.is_anonymous},
    )
    return _mirror(view)


def clear_cart(*, identity: Identity) -> CartView:
    try:
        view = _write_clear(owner_key=identity.key)
    except DatabaseError as exc:
        return _apply_locally(identity, exc, lambda lines: [], action="clear")
    logger.info(
        "cart.cleared",
        extra={"event": "cart.cleared", "owner_key": identity.key, "guest": identity.is_anonymous},
    )
    return _mirror(view)


@transaction.atomic
def _write_merge(*, guest_key: str, account_key: str) -> str:
    guest = Cart.objects.select_for_update().filter(owner_key=guest_key).first()
    guest_lines = list(CartLine.objects.select_for_update().filter(cart=guest).order_by("id")) if guest else []
    if not guest_lines:
        if guest is not None:
            guest.delete()
        return MergeOutcome.NO_GUEST_ITEMS

    dest = Cart.objects.select_for_update().filter(owner_key=account_key).first()
    if dest is None or not dest.lines.exists():
        # Account has nothing yet: the guest cart simply changes owner
        if dest is not None:
            dest.delete()
        guest.owner_key = account_key
        guest.save(update_fields=["owner_key", "updated_at"])
        return MergeOutcome.CONVERTED

    for line in guest_lines:
        existing = (
            CartLine.objects.select_for_update()
            .filter(cart=dest, product_id=line.product_id, variant_key=line.variant_key)
            .first()
        )
        if existing is not None:
            existing.quantity = int(existing.quantity) + int(line.quantity)
            existing.save(update_fields=["quantity", "updated_at"])
        else:
            line.cart = dest
            line.save(update_fields=["cart", "updated_at"])
    # Coalesced lines still belong to the guest cart and go with it
    guest.delete()
    dest.save(update_fields=["updated_at"])
    return MergeOutcome.MERGED


def merge_guest_cart(*, anonymous_token: str, account_id) -> str:
    """Move a guest cart into an account cart in one transaction.

    Lines for the same (product, price variant) have their quantities summed;
    the rest are moved across. The guest cart is deleted. Running it again
    for the same token finds nothing and returns `NO_GUEST_ITEMS`.
    """

    guest_key = Identity.anonymous(anonymous_token).key
    account_key = Identity.account(account_id).key
    outcome = _write_merge(guest_key=guest_key, account_key=account_key)
    local_cache.discard(guest_key)
    if outcome != MergeOutcome.NO_GUEST_ITEMS:
        _mirror(build_cart_view(owner_key=account_key))
    logger.info(
        "cart.merged",
        extra={"event": "cart.merged", "guest_key": guest_key, "owner_key": account_key, "outcome": outcome},
    )
    return outcome
