"""Selectors for read-only cart queries."""

from common.exceptions import TransientStorageError
from django.db import DatabaseError
from identity.types import Identity

from . import local_cache
from .models import Cart, CartLine
from .types import SOURCE_LOCAL, CartLineView, CartView


def get_cart_for_owner(*, owner_key: str) -> Cart | None:
    return Cart.objects.filter(owner_key=owner_key).first()


def lines_for_cart(*, cart: Cart | None) -> list[CartLineView]:
    if cart is None:
        return []
    qs = CartLine.objects.filter(cart=cart).select_related("product").order_by("id")
    return [CartLineView.from_line(line) for line in qs]


def build_cart_view(*, owner_key: str) -> CartView:
    cart = get_cart_for_owner(owner_key=owner_key)
    return CartView(owner_key=owner_key, lines=lines_for_cart(cart=cart))


def get_cart_view(*, identity: Identity) -> CartView:
    """Return the identity's cart from storage.

    When storage is unavailable an anonymous owner is served from the local
    mirror; an authenticated owner gets `TransientStorageError`.
    """

    try:
        return build_cart_view(owner_key=identity.key)
    except DatabaseError as exc:
        if not identity.is_anonymous:
            raise TransientStorageError("Cart storage is unavailable, please retry") from exc
        return local_cache.load(identity.key) or CartView(owner_key=identity.key, source=SOURCE_LOCAL)
