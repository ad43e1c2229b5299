"""Bank-transfer settlement instructions shown with a pending order."""

from django.conf import settings

from .models import Invoice, Order


def format_amount(amount) -> str:
    currency = settings.SETTLEMENT_CURRENCY
    if currency == "NGN":
        return f"₦{amount:,.2f}"
    return f"{currency} {amount:,.2f}"


def settlement_accounts() -> list[dict]:
    """Configured bank accounts, skipping slots without an account number."""

    return [dict(account) for account in settings.SETTLEMENT_ACCOUNTS if account.get("account_number")]


def settlement_instructions(*, order: Order, invoice: Invoice | None = None) -> dict:
    """Everything a customer needs to pay `order` by bank transfer.

    The order number is the reference to quote on the transfer.
    """

    support = settings.SUPPORT_EMAIL
    return {
        "currency": settings.SETTLEMENT_CURRENCY,
        "amount": order.total,
        "order_number": order.number,
        "payment_reference": order.payment_reference,
        "invoice_number": invoice.number if invoice else None,
        "due_at": invoice.due_at if invoice else None,
        "accounts": settlement_accounts(),
        "company": {
            "name": settings.COMPANY_NAME,
            "address": settings.COMPANY_ADDRESS,
            "phone": settings.COMPANY_PHONE,
        },
        "support_email": support,
        "instructions": [
            f"Transfer {format_amount(order.total)} to any of the account details above",
            f'Use "{order.number}" as your payment reference/description',
            f"Send payment confirmation screenshot/receipt to {support}",
            "Payment will be verified and your order confirmed within 24 hours",
            "Your order status will be updated once payment is verified by our team",
        ],
    }
