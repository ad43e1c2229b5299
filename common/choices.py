"""Shared enumerations and choices used across apps."""

from django.db import models


class DraftPublished(models.TextChoices):
    DRAFT = "draft", "Draft"
    PUBLISHED = "published", "Published"


class OwnerKind(models.TextChoices):
    """Who currently owns a cart or purchase record."""

    ANONYMOUS = "anonymous", "Anonymous"
    AUTHENTICATED = "authenticated", "Authenticated"


class MergeOutcome(models.TextChoices):
    """Result of moving a guest cart into an account cart."""

    NO_GUEST_ITEMS = "no_guest_items", "No guest items to merge"
    CONVERTED = "converted", "Guest cart converted to account cart"
    MERGED = "merged", "Carts merged"
    IN_FLIGHT = "in_flight", "Merge already in progress"
    STALE = "stale", "Anonymous token no longer current"
    FAILED = "failed", "Merge failed"


class PriceKind(models.TextChoices):
    """How a cart line is priced: a fixed unit price or a chosen tier."""

    FIXED = "fixed", "Fixed price"
    TIER = "tier", "Price tier"


class CheckoutStatus(models.TextChoices):
    """Lifecycle statuses for checkout sessions.

    `COMPLETED` means the session was finalized into an order, not that the
    order has been paid.
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"
    EXPIRED = "expired", "Expired"
    ABANDONED = "abandoned", "Abandoned"


class CheckoutOutcome(models.TextChoices):
    """What a checkout submission did."""

    CREATED = "created", "New order created"
    EXISTING = "existing", "Existing pending order returned"
    RETRIED = "retried", "Previous order cancelled and a new one created"


class OrderStatus(models.TextChoices):
    """Lifecycle statuses for orders."""

    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    PROCESSING = "processing", "Processing"
    SHIPPED = "shipped", "Shipped"
    DELIVERED = "delivered", "Delivered"
    CANCELLED = "cancelled", "Cancelled"
    FAILED = "failed", "Failed"


class PaymentStatus(models.TextChoices):
    UNPAID = "unpaid", "Unpaid"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
    REFUNDED = "refunded", "Refunded"


class InvoiceStatus(models.TextChoices):
    """Invoice statuses; transitions follow the owning order."""

    SENT = "sent", "Sent"
    PAID = "paid", "Paid"
    CANCELLED = "cancelled", "Cancelled"
