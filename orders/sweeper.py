"""Reconciliation sweeper for checkout records.

Runs before a new order replaces an expired or failed one, from the checkout
failure handler, and from the `expire_pending_orders` command. It only moves
records to terminal states or deletes orphan sessions; it never creates open
ones. Every update is conditional on the current state, so repeating a sweep
or running two concurrently is harmless.
"""

import logging
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from .models import CheckoutSession, Invoice, Order
from .selectors import open_orders, order_ttl

logger = logging.getLogger("freshcart.orders")

REASON_EXPIRED = "expired"
REASON_FAILED = "failed"

_SESSION_STATUS_FOR_REASON = {
    REASON_EXPIRED: CheckoutSession.STATUS_EXPIRED,
    REASON_FAILED: CheckoutSession.STATUS_ABANDONED,
}


def _cascade_to_session_and_invoice(*, order_id: int, session_status: str, now: datetime) -> None:
    (
        CheckoutSession.objects.filter(order_id=order_id)
        .exclude(status__in=CheckoutSession.TERMINAL_STATUSES)
        .update(status=session_status, updated_at=now)
    )
    Invoice.objects.filter(order_id=order_id, status=Invoice.STATUS_SENT).update(
        status=Invoice.STATUS_CANCELLED, updated_at=now
    )


@transaction.atomic
def cancel_triple(order: Order, *, reason: str = REASON_EXPIRED, now: datetime | None = None) -> bool:
    """Cancel an open order together with its checkout session and invoice.

    The session ends EXPIRED for TTL expiry and ABANDONED for a failed order.
    A cancelled order whose session or invoice was left behind is finished
    off; paid or fulfilled orders are never touched. Returns True when the
    triple is (now) cancelled.
    """

    now = now or timezone.now()
    row = Order.objects.select_for_update().filter(pk=order.pk).first()
    if row is None:
        return False
    if row.is_open:
        previous = row.status
        Order.objects.filter(pk=row.pk).update(status=Order.STATUS_CANCELLED, updated_at=now)
        logger.info(
            "order_status_changed",
            extra={
                "event": "order_status_changed",
                "order_id": row.id,
                "owner_key": row.owner_key,
                "status_from": previous,
                "status_to": Order.STATUS_CANCELLED,
                "reason": reason,
            },
        )
    elif row.status != Order.STATUS_CANCELLED:
        return False
    _cascade_to_session_and_invoice(
        order_id=row.pk, session_status=_SESSION_STATUS_FOR_REASON.get(reason, CheckoutSession.STATUS_ABANDONED), now=now
    )
    order.status = Order.STATUS_CANCELLED
    logger.info(
        "sweeper.triple_cancelled",
        extra={"event": "sweeper.triple_cancelled", "order_id": row.id, "owner_key": row.owner_key, "reason": reason},
    )
    return True


def delete_orphan_sessions(*, owner_key: str | None = None, older_than: datetime | None = None) -> int:
    """Delete checkout sessions that never got an order."""

    qs = CheckoutSession.objects.filter(order__isnull=True)
    if owner_key:
        qs = qs.filter(owner_key=owner_key)
    if older_than:
        qs = qs.filter(created_at__lt=older_than)
    deleted, _ = qs.delete()
    if deleted:
        logger.info(
            "sweeper.orphans_deleted",
            extra={"event": "sweeper.orphans_deleted", "owner_key": owner_key, "count": deleted},
        )
    return deleted


def fail_recent_open_orders(*, owner_key: str, now: datetime | None = None) -> int:
    """Fail the owner's recent half-created orders after a failed checkout.

    Only open orders created within `RECENT_ORDER_WINDOW_MINUTES` that are
    missing their session or invoice are failed, so a complete order written
    by a concurrent request is left alone.
    """

    now = now or timezone.now()
    window_start = now - timedelta(minutes=settings.RECENT_ORDER_WINDOW_MINUTES)
    half_created = (
        open_orders(owner_key=owner_key)
        .filter(created_at__gte=window_start)
        .filter(Q(checkout_session__isnull=True) | Q(invoice__isnull=True))
    )
    failed = 0
    for order in half_created:
        with transaction.atomic():
            changed = Order.objects.filter(
                pk=order.pk,
                status=Order.STATUS_PENDING,
                payment_status__in=Order.OPEN_PAYMENT_STATUSES,
            ).update(status=Order.STATUS_FAILED, updated_at=now)
            (
                CheckoutSession.objects.filter(order_id=order.pk)
                .exclude(status__in=CheckoutSession.TERMINAL_STATUSES)
                .update(status=CheckoutSession.STATUS_FAILED, updated_at=now)
            )
            Invoice.objects.filter(order_id=order.pk, status=Invoice.STATUS_SENT).update(
                status=Invoice.STATUS_CANCELLED, updated_at=now
            )
        if changed:
            failed += 1
            logger.warning(
                "order_status_changed",
                extra={
                    "event": "order_status_changed",
                    "order_id": order.id,
                    "owner_key": owner_key,
                    "status_from": order.status,
                    "status_to": Order.STATUS_FAILED,
                    "reason": "half_created",
                },
            )
    return failed


def expire_stale_orders(*, now: datetime | None = None) -> int:
    """Cancel every pending order older than the TTL and drop stale orphan sessions."""

    now = now or timezone.now()
    stale = Order.objects.filter(
        status=Order.STATUS_PENDING,
        payment_status__in=Order.OPEN_PAYMENT_STATUSES,
        created_at__lt=now - order_ttl(),
    )
    expired = 0
    for order in stale.iterator():
        if cancel_triple(order, reason=REASON_EXPIRED, now=now):
            expired += 1
    delete_orphan_sessions(older_than=now - timedelta(minutes=settings.RECENT_ORDER_WINDOW_MINUTES))
    return expired
