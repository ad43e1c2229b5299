"""Email utilities for the orders app.

Uses Django's email backend, with links composed from FRONTEND_URL.
"""

from django.conf import settings
from django.core.mail import send_mail

from .settlement import format_amount, settlement_instructions


def _order_url(order) -> str:
    frontend = getattr(settings, "FRONTEND_URL", "")
    if not frontend:
        return ""
    return f"{frontend.rstrip('/')}/orders/{order.number}"


def send_order_confirmation(email, order) -> None:
    """Send the bank-transfer instructions for a newly created order.

    No-ops when no email address is known. Delivery errors propagate to the
    caller, which logs them without affecting the order.
    """
    if not email:
        return

    settlement = settlement_instructions(order=order, invoice=getattr(order, "invoice", None))
    accounts = "\n".join(
        f"  {acc['bank_name']} - {acc['account_name']} - {acc['account_number']}" for acc in settlement["accounts"]
    )
    steps = "\n".join(f"  {i}. {step}" for i, step in enumerate(settlement["instructions"], start=1))
    url = _order_url(order)

    body = (
        "Thank you for your order!\n\n"
        f"Order: {order.number}\n"
        f"Amount due: {format_amount(order.total)}\n\n"
        f"Pay into:\n{accounts}\n\n"
        f"{steps}\n"
    )
    if url:
        body += f"\nYou can view your order here: {url}\n"

    send_mail(
        f"Your order {order.number} is awaiting payment",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [email],
        fail_silently=False,
    )


def send_payment_confirmed_email(order) -> None:
    """Tell the customer their transfer was verified. Silently no-ops without an email."""
    if not order.email:
        return

    url = _order_url(order)
    body = (
        "We have received your payment.\n\n"
        f"Order: {order.number}\n"
        f"Status: {order.status}\n"
    )
    if url:
        body += f"\nYou can view your order here: {url}\n"

    send_mail(
        f"Your order {order.number} is confirmed",
        body,
        getattr(settings, "DEFAULT_FROM_EMAIL", None),
        [order.email],
        fail_silently=True,
    )
