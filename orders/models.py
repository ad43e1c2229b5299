"""Orders app models.

A checkout produces a triple: `CheckoutSession`, `Order` and `Invoice`. The
checkout orchestrator is the only writer that creates them; the sweeper only
moves them to terminal states or deletes orphan sessions.
"""

from decimal import Decimal

from common.choices import CheckoutStatus, InvoiceStatus, OrderStatus, PaymentStatus, PriceKind
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Order(TimeStampedModel):
    """Purchase order capturing a priced snapshot of an owner's cart.

    Totals are denormalized to support reporting and auditability. At most one
    order per owner may be open (pending with unpaid or failed payment); the
    database enforces it with a conditional unique constraint.
    """

    STATUS_PENDING = OrderStatus.PENDING
    STATUS_CONFIRMED = OrderStatus.CONFIRMED
    STATUS_CANCELLED = OrderStatus.CANCELLED
    STATUS_FAILED = OrderStatus.FAILED
    STATUS_CHOICES = OrderStatus.choices

    PAYMENT_UNPAID = PaymentStatus.UNPAID
    PAYMENT_PAID = PaymentStatus.PAID
    PAYMENT_FAILED = PaymentStatus.FAILED
    PAYMENT_CHOICES = PaymentStatus.choices

    OPEN_STATUSES = (OrderStatus.PENDING, OrderStatus.FAILED)
    OPEN_PAYMENT_STATUSES = (PaymentStatus.UNPAID, PaymentStatus.FAILED)

    owner_key = models.CharField(max_length=128, db_index=True)
    number = models.CharField(max_length=40, unique=True)
    email = models.EmailField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_status = models.CharField(max_length=16, choices=PAYMENT_CHOICES, default=PAYMENT_UNPAID)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0"))
    payment_reference = models.CharField(max_length=64, unique=True)
    shipping_address = models.JSONField(default=dict)
    billing_address = models.JSONField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner_key", "status", "created_at"], name="order_owner_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["owner_key"],
                condition=models.Q(status=OrderStatus.PENDING, payment_status__in=[PaymentStatus.UNPAID, PaymentStatus.FAILED]),
                name="one_open_order_per_owner",
            ),
            models.CheckConstraint(name="order_total_non_negative", condition=models.Q(total__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"Order#{self.id} {self.number} owner={self.owner_key} status={self.status}"

    @property
    def is_open(self) -> bool:
        return self.status in self.OPEN_STATUSES and self.payment_status in self.OPEN_PAYMENT_STATUSES


class OrderItem(TimeStampedModel):
    """Line item within an order.

    Snapshots product info and the resolved unit price for auditability.
    """

    order = models.ForeignKey(Order, related_name="items", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="order_items", on_delete=models.PROTECT)
    product_title = models.CharField(max_length=200, blank=True)
    product_sku = models.CharField(max_length=64, blank=True)
    quantity = models.PositiveIntegerField(default=1)
    price_kind = models.CharField(max_length=8, choices=PriceKind.choices)
    tier_unit = models.CharField(max_length=64, blank=True, default="")
    unit_price = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    unit_weight = models.DecimalField(max_digits=8, decimal_places=3, default=Decimal("0"))

    class Meta:
        ordering = ["id"]
        constraints = [
            models.CheckConstraint(name="orderitem_price_non_negative", condition=models.Q(unit_price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"OrderItem#{self.id} order={self.order_id} product={self.product_id} qty={self.quantity}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price or Decimal("0.00")) * Decimal(int(self.quantity))


class CheckoutSession(TimeStampedModel):
    """One attempted purchase.

    `COMPLETED` means the session was finalized into an order. A session
    without an order is an orphan left by a failed create sequence.
    """

    STATUS_PENDING = CheckoutStatus.PENDING
    STATUS_COMPLETED = CheckoutStatus.COMPLETED
    STATUS_FAILED = CheckoutStatus.FAILED
    STATUS_EXPIRED = CheckoutStatus.EXPIRED
    STATUS_ABANDONED = CheckoutStatus.ABANDONED
    STATUS_CHOICES = CheckoutStatus.choices
    TERMINAL_STATUSES = (CheckoutStatus.FAILED, CheckoutStatus.EXPIRED, CheckoutStatus.ABANDONED)

    owner_key = models.CharField(max_length=128, db_index=True)
    reference = models.CharField(max_length=64, unique=True)
    order = models.OneToOneField(
        Order, null=True, blank=True, related_name="checkout_session", on_delete=models.SET_NULL
    )
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PENDING, db_index=True)
    payment_status = models.CharField(max_length=16, choices=PaymentStatus.choices, default=PaymentStatus.UNPAID)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total_weight = models.DecimalField(max_digits=10, decimal_places=3, default=Decimal("0"))
    shipping_address = models.JSONField(default=dict)
    billing_address = models.JSONField(null=True, blank=True)
    expires_at = models.DateTimeField()

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["owner_key", "status"], name="checkout_owner_status_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CheckoutSession#{self.id} {self.reference} order={self.order_id} status={self.status}"


class Invoice(TimeStampedModel):
    """Invoice derived 1:1 from an order; its status follows the order."""

    STATUS_SENT = InvoiceStatus.SENT
    STATUS_PAID = InvoiceStatus.PAID
    STATUS_CANCELLED = InvoiceStatus.CANCELLED
    STATUS_CHOICES = InvoiceStatus.choices

    order = models.OneToOneField(Order, related_name="invoice", on_delete=models.CASCADE)
    number = models.CharField(max_length=40, unique=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_SENT, db_index=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    shipping_fee = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))
    currency = models.CharField(max_length=3, default="NGN")
    payment_reference = models.CharField(max_length=64)
    issued_at = models.DateTimeField()
    due_at = models.DateTimeField()

    class Meta:
        ordering = ["-issued_at", "-id"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Invoice#{self.id} {self.number} order={self.order_id} status={self.status}"
