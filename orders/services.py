"""Checkout orchestrator: turns a cart into exactly one open order per owner.

Before any write, the owner's most recent open order is classified:

- NONE             -> create a new session/order/invoice triple
- PENDING_FRESH    -> return it, recreating a missing session or invoice
- PENDING_EXPIRED  -> cancel its triple, then create a new one
- FAILED           -> cancel its triple, then create a new one

The triple is written in one transaction. The open-order unique constraint
makes a concurrent loser fail its insert; it then re-runs the
classification, which finds the winner's order.
"""

import enum
import logging
import secrets
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from catalog.models import Product
from common.choices import CheckoutOutcome
from common.exceptions import CheckoutFailed, ConflictError, InvalidCart, TransientStorageError, ValidationError
from django.conf import settings
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone
from identity.types import Identity

from .emails import send_order_confirmation, send_payment_confirmed_email
from .models import CheckoutSession, Invoice, Order, OrderItem
from .pricing import PricedCart, price_cart, validate_shipping_address
from .selectors import latest_open_order, order_ttl
from .settlement import settlement_instructions
from .sweeper import REASON_EXPIRED, REASON_FAILED, cancel_triple, delete_orphan_sessions, fail_recent_open_orders

logger = logging.getLogger("freshcart.orders")


class OpenOrderState(enum.Enum):
    NONE = "none"
    PENDING_FRESH = "pending_fresh"
    PENDING_EXPIRED = "pending_expired"
    FAILED = "failed"


@dataclass
class CheckoutResult:
    outcome: str
    checkout: CheckoutSession
    order: Order
    invoice: Invoice
    settlement: dict


class _OpenOrderTaken(Exception):
    """The open-order constraint rejected our insert."""


def classify_open_order(order: Order | None, *, now: datetime) -> OpenOrderState:
    if order is None:
        return OpenOrderState.NONE
    if order.status == Order.STATUS_FAILED:
        return OpenOrderState.FAILED
    if order.status == Order.STATUS_PENDING:
        if now - order.created_at <= order_ttl():
            return OpenOrderState.PENDING_FRESH
        return OpenOrderState.PENDING_EXPIRED
    raise ValueError(f"Order {order.pk} with status {order.status} is not open")


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


def generate_payment_reference(*, retry: bool = False) -> str:
    reference = f"PAY_{uuid.uuid4().hex}"
    return f"{reference}_RETRY" if retry else reference


def _load_products(lines) -> dict:
    ids = {int(line.product_id) for line in lines}
    products = {p.id: p for p in Product.objects.filter(id__in=ids).prefetch_related("price_tiers")}
    missing = ids - set(products)
    if missing:
        raise InvalidCart(f"Products no longer available: {sorted(missing)}")
    return products


def _create_invoice(order: Order, *, now: datetime) -> Invoice:
    return Invoice.objects.create(
        order=order,
        number=order.number,
        status=Invoice.STATUS_SENT,
        subtotal=order.subtotal,
        shipping_fee=order.shipping_fee,
        discount=order.discount,
        total=order.total,
        currency=settings.SETTLEMENT_CURRENCY,
        payment_reference=order.payment_reference,
        issued_at=now,
        due_at=now + timedelta(days=settings.INVOICE_DUE_DAYS),
    )


def _create_checkout(order: Order, *, expires_at: datetime) -> CheckoutSession:
    return CheckoutSession.objects.create(
        owner_key=order.owner_key,
        reference=f"CHK_{uuid.uuid4().hex}",
        order=order,
        status=CheckoutSession.STATUS_COMPLETED,
        payment_status=order.payment_status,
        subtotal=order.subtotal,
        shipping_fee=order.shipping_fee,
        discount=order.discount,
        total=order.total,
        total_weight=order.total_weight,
        shipping_address=order.shipping_address,
        billing_address=order.billing_address,
        expires_at=expires_at,
    )


def _has_pending_order(*, owner_key: str) -> bool:
    return Order.objects.filter(
        owner_key=owner_key, status=Order.STATUS_PENDING, payment_status__in=Order.OPEN_PAYMENT_STATUSES
    ).exists()


def _create_triple(
    *,
    identity: Identity,
    priced: PricedCart,
    shipping_address: dict,
    billing_address: dict | None,
    email: str | None,
    retry: bool,
) -> tuple[CheckoutSession, Order, Invoice]:
    now = timezone.now()
    with transaction.atomic():
        checkout = CheckoutSession.objects.create(
            owner_key=identity.key,
            reference=f"CHK_{uuid.uuid4().hex}",
            status=CheckoutSession.STATUS_COMPLETED,
            subtotal=priced.subtotal,
            shipping_fee=priced.shipping_fee,
            discount=priced.discount,
            total=priced.total,
            total_weight=priced.total_weight,
            shipping_address=shipping_address,
            billing_address=billing_address,
            expires_at=now + order_ttl(),
        )
        try:
            with transaction.atomic():
                order = Order.objects.create(
                    owner_key=identity.key,
                    number=generate_order_number(),
                    email=email,
                    subtotal=priced.subtotal,
                    shipping_fee=priced.shipping_fee,
                    discount=priced.discount,
                    total=priced.total,
                    total_weight=priced.total_weight,
                    payment_reference=generate_payment_reference(retry=retry),
                    shipping_address=shipping_address,
                    billing_address=billing_address,
                )
        except IntegrityError as exc:
            # Only the open-order constraint means a concurrent checkout won
            if _has_pending_order(owner_key=identity.key):
                raise _OpenOrderTaken() from exc
            raise
        OrderItem.objects.bulk_create(
            [
                OrderItem(
                    order=order,
                    product_id=line.product_id,
                    product_title=line.title,
                    product_sku=line.sku,
                    quantity=line.quantity,
                    price_kind=line.price_kind,
                    tier_unit=line.tier_unit,
                    unit_price=line.unit_price,
                    unit_weight=line.unit_weight,
                )
                for line in priced.lines
            ]
        )
        checkout.order = order
        checkout.save(update_fields=["order", "updated_at"])
        invoice = _create_invoice(order, now=now)
    return checkout, order, invoice


@transaction.atomic
def _resurface(order: Order) -> tuple[CheckoutSession, Order, Invoice]:
    """Return an open order's triple, recreating a session or invoice lost to a partial failure."""

    now = timezone.now()
    order = Order.objects.select_for_update().get(pk=order.pk)
    checkout = CheckoutSession.objects.filter(order=order).first()
    if checkout is None:
        checkout = _create_checkout(order, expires_at=order.created_at + order_ttl())
        logger.warning(
            "checkout.session_recreated",
            extra={"event": "checkout.session_recreated", "order_id": order.id, "owner_key": order.owner_key},
        )
    invoice = Invoice.objects.filter(order=order).first()
    if invoice is None:
        invoice = _create_invoice(order, now=now)
        logger.warning(
            "checkout.invoice_recreated",
            extra={"event": "checkout.invoice_recreated", "order_id": order.id, "owner_key": order.owner_key},
        )
    return checkout, order, invoice


def _cleanup_after_failure(*, owner_key: str) -> None:
    """Best-effort sweep after a failed create; errors are logged, never raised."""

    steps = [
        ("delete_orphan_sessions", delete_orphan_sessions),
        ("fail_recent_open_orders", fail_recent_open_orders),
    ]
    for name, step in steps:
        try:
            step(owner_key=owner_key)
        except DatabaseError:
            logger.exception(
                "checkout.cleanup_failed",
                extra={"event": "checkout.cleanup_failed", "owner_key": owner_key, "step": name},
            )


def _notify(notifier: Callable, *, email: str | None, order: Order) -> None:
    try:
        notifier(email, order)
    except Exception:
        # Notification is fire-and-forget; the order stands regardless
        logger.exception(
            "checkout.notification_failed",
            extra={"event": "checkout.notification_failed", "order_id": order.id, "owner_key": order.owner_key},
        )


def _attempt(
    *,
    identity: Identity,
    priced: PricedCart,
    shipping_address: dict,
    billing_address: dict | None,
    email: str | None,
    notifier: Callable,
) -> CheckoutResult:
    now = timezone.now()
    try:
        existing = latest_open_order(owner_key=identity.key)
        state = classify_open_order(existing, now=now)
        log_extra = {"owner_key": identity.key, "state": state.value}

        if state is OpenOrderState.PENDING_FRESH:
            checkout, order, invoice = _resurface(existing)
            logger.info("checkout.existing", extra={"event": "checkout.existing", "order_id": order.id, **log_extra})
            return CheckoutResult(
                CheckoutOutcome.EXISTING, checkout, order, invoice, settlement_instructions(order=order, invoice=invoice)
            )

        retry = state in (OpenOrderState.PENDING_EXPIRED, OpenOrderState.FAILED)
        if retry:
            reason = REASON_EXPIRED if state is OpenOrderState.PENDING_EXPIRED else REASON_FAILED
            cancel_triple(existing, reason=reason, now=now)
            delete_orphan_sessions(owner_key=identity.key)
    except DatabaseError as exc:
        # Lookup, re-surface and cancel are all repeatable
        logger.warning(
            "checkout.storage_unavailable",
            extra={"event": "checkout.storage_unavailable", "owner_key": identity.key, "error": str(exc)},
        )
        raise TransientStorageError("Order storage is unavailable, please retry") from exc

    try:
        checkout, order, invoice = _create_triple(
            identity=identity,
            priced=priced,
            shipping_address=shipping_address,
            billing_address=billing_address,
            email=email,
            retry=retry,
        )
    except DatabaseError as exc:
        logger.error(
            "checkout.create_failed",
            extra={"event": "checkout.create_failed", "error": str(exc), **log_extra},
        )
        _cleanup_after_failure(owner_key=identity.key)
        raise CheckoutFailed("Could not create your order, please retry") from exc

    event = "checkout.retried" if retry else "checkout.created"
    logger.info(
        event,
        extra={
            "event": event,
            "order_id": order.id,
            "order_number": order.number,
            "replaced_order_id": existing.id if existing else None,
            "total": str(order.total),
            **log_extra,
        },
    )
    _notify(notifier, email=email, order=order)
    return CheckoutResult(
        CheckoutOutcome.RETRIED if retry else CheckoutOutcome.CREATED,
        checkout,
        order,
        invoice,
        settlement_instructions(order=order, invoice=invoice),
    )


def submit_checkout(
    *,
    identity: Identity,
    cart_snapshot,
    shipping_address: dict,
    billing_address: dict | None = None,
    discount: Decimal = Decimal("0.00"),
    email: str | None = None,
    notifier: Callable | None = None,
) -> CheckoutResult:
    """Validate and price the cart, then create or re-surface the owner's open order.

    `cart_snapshot` is a `CartView` or any iterable of lines exposing
    `product_id`, `quantity`, `fixed_price`, `tier_unit` and `tier_price`.
    Validation errors are raised before anything is written. `notifier` is
    called as `notifier(email, order)` after a new order is committed;
    it defaults to `send_order_confirmation`.
    """

    lines = list(getattr(cart_snapshot, "lines", cart_snapshot) or [])
    if not lines:
        raise InvalidCart("Cart is empty")
    address = validate_shipping_address(shipping_address)
    try:
        products = _load_products(lines)
    except DatabaseError as exc:
        raise TransientStorageError("Catalog is unavailable, please retry") from exc
    priced = price_cart(lines, products, address, discount)
    notifier = notifier or send_order_confirmation

    try:
        return _attempt(
            identity=identity,
            priced=priced,
            shipping_address=address,
            billing_address=billing_address,
            email=email,
            notifier=notifier,
        )
    except _OpenOrderTaken:
        logger.warning("checkout.conflict", extra={"event": "checkout.conflict", "owner_key": identity.key})

    # A concurrent submission won the race; this pass finds and returns its order
    try:
        return _attempt(
            identity=identity,
            priced=priced,
            shipping_address=address,
            billing_address=billing_address,
            email=email,
            notifier=notifier,
        )
    except _OpenOrderTaken as exc:
        raise ConflictError("Another checkout for this cart is in progress, please retry") from exc


@transaction.atomic
def confirm_payment(order: Order) -> Order:
    """Record a verified bank transfer: the order is confirmed and its invoice paid.

    Idempotent for already-paid orders. Cancelled or failed orders cannot be paid.
    """

    order = Order.objects.select_for_update().get(pk=order.pk)
    if order.payment_status == Order.PAYMENT_PAID:
        return order
    if order.status in (Order.STATUS_CANCELLED, Order.STATUS_FAILED):
        raise ValidationError(f"Cannot confirm payment for a {order.status} order", code="order_not_payable")
    previous = order.status
    now = timezone.now()
    order.status = Order.STATUS_CONFIRMED
    order.payment_status = Order.PAYMENT_PAID
    order.paid_at = now
    order.save(update_fields=["status", "payment_status", "paid_at", "updated_at"])
    Invoice.objects.filter(order=order, status=Invoice.STATUS_SENT).update(status=Invoice.STATUS_PAID, updated_at=now)
    CheckoutSession.objects.filter(order=order).update(payment_status=Order.PAYMENT_PAID, updated_at=now)
    logger.info(
        "order_status_changed",
        extra={
            "event": "order_status_changed",
            "order_id": order.id,
            "owner_key": order.owner_key,
            "status_from": previous,
            "status_to": order.status,
        },
    )
    transaction.on_commit(lambda: send_payment_confirmed_email(order))
    return order
