import decimal

import django.db.models.deletion
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("confirmed", "Confirmed"),
    ("processing", "Processing"),
    ("shipped", "Shipped"),
    ("delivered", "Delivered"),
    ("cancelled", "Cancelled"),
    ("failed", "Failed"),
]
PAYMENT_STATUS_CHOICES = [
    ("unpaid", "Unpaid"),
    ("paid", "Paid"),
    ("failed", "Failed"),
    ("refunded", "Refunded"),
]
CHECKOUT_STATUS_CHOICES = [
    ("pending", "Pending"),
    ("completed", "Completed"),
    ("failed", "Failed"),
    ("expired", "Expired"),
    ("abandoned", "Abandoned"),
]
INVOICE_STATUS_CHOICES = [
    ("sent", "Sent"),
    ("paid", "Paid"),
    ("cancelled", "Cancelled"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner_key", models.CharField(db_index=True, max_length=128)),
                ("number", models.CharField(max_length=40, unique=True)),
                ("email", models.EmailField(blank=True, max_length=254, null=True)),
                (
                    "status",
                    models.CharField(choices=ORDER_STATUS_CHOICES, db_index=True, default="pending", max_length=16),
                ),
                ("payment_status", models.CharField(choices=PAYMENT_STATUS_CHOICES, default="unpaid", max_length=16)),
                ("subtotal", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("total_weight", models.DecimalField(decimal_places=3, default=decimal.Decimal("0"), max_digits=10)),
                ("payment_reference", models.CharField(max_length=64, unique=True)),
                ("shipping_address", models.JSONField(default=dict)),
                ("billing_address", models.JSONField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["owner_key", "status", "created_at"], name="order_owner_status_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(status="pending", payment_status__in=["unpaid", "failed"]),
                        fields=("owner_key",),
                        name="one_open_order_per_owner",
                    ),
                    models.CheckConstraint(condition=models.Q(total__gte=0), name="order_total_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("product_title", models.CharField(blank=True, max_length=200)),
                ("product_sku", models.CharField(blank=True, max_length=64)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "price_kind",
                    models.CharField(choices=[("fixed", "Fixed price"), ("tier", "Price tier")], max_length=8),
                ),
                ("tier_unit", models.CharField(blank=True, default="", max_length=64)),
                ("unit_price", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("unit_weight", models.DecimalField(decimal_places=3, default=decimal.Decimal("0"), max_digits=8)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(unit_price__gte=0), name="orderitem_price_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="CheckoutSession",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner_key", models.CharField(db_index=True, max_length=128)),
                ("reference", models.CharField(max_length=64, unique=True)),
                (
                    "status",
                    models.CharField(choices=CHECKOUT_STATUS_CHOICES, db_index=True, default="pending", max_length=16),
                ),
                ("payment_status", models.CharField(choices=PAYMENT_STATUS_CHOICES, default="unpaid", max_length=16)),
                ("subtotal", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("total_weight", models.DecimalField(decimal_places=3, default=decimal.Decimal("0"), max_digits=10)),
                ("shipping_address", models.JSONField(default=dict)),
                ("billing_address", models.JSONField(blank=True, null=True)),
                ("expires_at", models.DateTimeField()),
                (
                    "order",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="checkout_session",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at", "-id"],
                "indexes": [models.Index(fields=["owner_key", "status"], name="checkout_owner_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="Invoice",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("number", models.CharField(max_length=40, unique=True)),
                (
                    "status",
                    models.CharField(choices=INVOICE_STATUS_CHOICES, db_index=True, default="sent", max_length=16),
                ),
                ("subtotal", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("shipping_fee", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("discount", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("total", models.DecimalField(decimal_places=2, default=decimal.Decimal("0.00"), max_digits=12)),
                ("currency", models.CharField(default="NGN", max_length=3)),
                ("payment_reference", models.CharField(max_length=64)),
                ("issued_at", models.DateTimeField()),
                ("due_at", models.DateTimeField()),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="invoice",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-issued_at", "-id"],
            },
        ),
    ]
