"""Selectors for read-only order queries."""

from datetime import datetime, timedelta

from django.conf import settings
from django.utils import timezone
from identity.types import Identity

from .models import CheckoutSession, Invoice, Order


def order_ttl() -> timedelta:
    return timedelta(hours=settings.ORDER_TTL_HOURS)


def open_orders(*, owner_key: str):
    """Orders that still permit becoming the owner's current purchase."""

    return Order.objects.filter(
        owner_key=owner_key,
        status__in=Order.OPEN_STATUSES,
        payment_status__in=Order.OPEN_PAYMENT_STATUSES,
    )


def latest_open_order(*, owner_key: str) -> Order | None:
    return open_orders(owner_key=owner_key).order_by("-created_at", "-id").first()


def get_current_order(*, identity: Identity, now: datetime | None = None) -> Order | None:
    """Return the owner's pending, unpaid order if it is still within the TTL."""

    now = now or timezone.now()
    return (
        open_orders(owner_key=identity.key)
        .filter(status=Order.STATUS_PENDING, created_at__gte=now - order_ttl())
        .prefetch_related("items")
        .order_by("-created_at", "-id")
        .first()
    )


def get_invoice_for_order(*, order: Order) -> Invoice | None:
    return Invoice.objects.filter(order=order).first()


def get_checkout_for_order(*, order: Order) -> CheckoutSession | None:
    return CheckoutSession.objects.filter(order=order).first()
