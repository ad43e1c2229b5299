"""Local resilience mirror for carts, kept in the Django cache.

Every durable cart write is mirrored here. When storage is unavailable,
anonymous carts are served and mutated from the mirror instead. Entries older
than `LOCAL_CART_MAX_AGE_DAYS` are discarded on load.
"""

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.core.cache import caches
from django.utils import timezone

from .types import SOURCE_LOCAL, CartLineView, CartView

logger = logging.getLogger("freshcart.cart")


def _cache():
    return caches[settings.LOCAL_CART_CACHE_ALIAS]


def _max_age() -> timedelta:
    return timedelta(days=settings.LOCAL_CART_MAX_AGE_DAYS)


def cache_key(owner_key: str) -> str:
    return f"cart:{owner_key}"


def save(view: CartView, *, now: datetime | None = None) -> None:
    now = now or timezone.now()
    entry = {
        "saved_at": now.isoformat(),
        "lines": [line.to_cache() for line in view.lines],
    }
    _cache().set(cache_key(view.owner_key), entry, timeout=int(_max_age().total_seconds()))


def load(owner_key: str, *, now: datetime | None = None) -> CartView | None:
    """Return the mirrored cart, or None when missing or stale."""

    entry = _cache().get(cache_key(owner_key))
    if not entry:
        return None
    now = now or timezone.now()
    saved_at = datetime.fromisoformat(entry["saved_at"])
    if now - saved_at > _max_age():
        discard(owner_key)
        logger.info(
            "cart.local_discarded",
            extra={"event": "cart.local_discarded", "owner_key": owner_key, "saved_at": entry["saved_at"]},
        )
        return None
    lines = [CartLineView.from_cache(item) for item in entry.get("lines", [])]
    return CartView(owner_key=owner_key, lines=lines, source=SOURCE_LOCAL)


def discard(owner_key: str) -> None:
    _cache().delete(cache_key(owner_key))
