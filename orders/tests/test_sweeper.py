from datetime import timedelta
from io import StringIO

import pytest
from django.core.management import call_command
from django.utils import timezone
from orders.models import CheckoutSession, Invoice, Order
from orders.sweeper import (
    REASON_EXPIRED,
    REASON_FAILED,
    cancel_triple,
    delete_orphan_sessions,
    expire_stale_orders,
    fail_recent_open_orders,
)
from orders.tests.factories import CheckoutSessionFactory, InvoiceFactory, OrderFactory


def _triple(**order_kwargs):
    order = OrderFactory(**order_kwargs)
    session = CheckoutSessionFactory(order=order)
    invoice = InvoiceFactory(order=order)
    return order, session, invoice


def _reload(*objs):
    for obj in objs:
        obj.refresh_from_db()


@pytest.mark.django_db
def test_cancel_triple_cancels_all_three_and_is_idempotent():
    order, session, invoice = _triple()

    assert cancel_triple(order, reason=REASON_EXPIRED) is True
    assert cancel_triple(order, reason=REASON_EXPIRED) is True

    _reload(order, session, invoice)
    assert order.status == Order.STATUS_CANCELLED
    assert session.status == CheckoutSession.STATUS_EXPIRED
    assert invoice.status == Invoice.STATUS_CANCELLED


@pytest.mark.django_db
def test_cancel_for_failed_order_abandons_session():
    order, session, _ = _triple(status=Order.STATUS_FAILED)

    cancel_triple(order, reason=REASON_FAILED)

    _reload(session)
    assert session.status == CheckoutSession.STATUS_ABANDONED


@pytest.mark.django_db
def test_cancel_finishes_a_partially_cancelled_triple():
    order, session, invoice = _triple(status=Order.STATUS_CANCELLED)

    assert cancel_triple(order, reason=REASON_EXPIRED) is True

    _reload(session, invoice)
    assert session.status == CheckoutSession.STATUS_EXPIRED
    assert invoice.status == Invoice.STATUS_CANCELLED


@pytest.mark.django_db
def test_cancel_never_touches_paid_orders():
    order, session, invoice = _triple(status=Order.STATUS_CONFIRMED, payment_status=Order.PAYMENT_PAID)
    Invoice.objects.filter(pk=invoice.pk).update(status=Invoice.STATUS_PAID)

    assert cancel_triple(order, reason=REASON_EXPIRED) is False

    _reload(order, session, invoice)
    assert order.status == Order.STATUS_CONFIRMED
    assert session.status == CheckoutSession.STATUS_COMPLETED
    assert invoice.status == Invoice.STATUS_PAID


@pytest.mark.django_db
def test_delete_orphan_sessions_scoped_to_owner():
    CheckoutSessionFactory(order=None, owner_key="acct:1")
    CheckoutSessionFactory(order=None, owner_key="acct:2")
    _, linked, _ = _triple(owner_key="acct:1")

    assert delete_orphan_sessions(owner_key="acct:1") == 1
    assert CheckoutSession.objects.filter(owner_key="acct:2").count() == 1
    assert CheckoutSession.objects.filter(pk=linked.pk).exists()


@pytest.mark.django_db
def test_fail_recent_open_orders_only_fails_half_created_orders():
    half = OrderFactory(owner_key="acct:5")
    half_session = CheckoutSessionFactory(order=half)
    complete, _, complete_invoice = _triple(owner_key="acct:6")

    assert fail_recent_open_orders(owner_key="acct:5") == 1
    assert fail_recent_open_orders(owner_key="acct:5") == 0
    assert fail_recent_open_orders(owner_key="acct:6") == 0

    _reload(half, half_session, complete, complete_invoice)
    assert half.status == Order.STATUS_FAILED
    assert half_session.status == CheckoutSession.STATUS_FAILED
    assert complete.status == Order.STATUS_PENDING
    assert complete_invoice.status == Invoice.STATUS_SENT


@pytest.mark.django_db
def test_fail_recent_open_orders_ignores_orders_outside_window():
    old = OrderFactory(owner_key="acct:7")
    Order.objects.filter(pk=old.pk).update(created_at=timezone.now() - timedelta(minutes=30))

    assert fail_recent_open_orders(owner_key="acct:7") == 0
    _reload(old)
    assert old.status == Order.STATUS_PENDING


@pytest.mark.django_db
def test_expire_stale_orders_and_command():
    stale, stale_session, stale_invoice = _triple()
    fresh, _, _ = _triple()
    Order.objects.filter(pk=stale.pk).update(created_at=timezone.now() - timedelta(hours=30))

    assert expire_stale_orders() == 1
    _reload(stale, stale_session, stale_invoice, fresh)
    assert stale.status == Order.STATUS_CANCELLED
    assert stale_session.status == CheckoutSession.STATUS_EXPIRED
    assert stale_invoice.status == Invoice.STATUS_CANCELLED
    assert fresh.status == Order.STATUS_PENDING

    out = StringIO()
    call_command("expire_pending_orders", stdout=out)
    assert "Expired 0 pending orders." in out.getvalue()
