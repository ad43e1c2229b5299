import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("catalog", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Cart",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner_key", models.CharField(max_length=128, unique=True)),
            ],
            options={
                "ordering": ["-updated_at"],
            },
        ),
        migrations.CreateModel(
            name="CartLine",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("quantity", models.PositiveIntegerField(default=1)),
                (
                    "price_kind",
                    models.CharField(choices=[("fixed", "Fixed price"), ("tier", "Price tier")], max_length=8),
                ),
                ("fixed_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("tier_unit", models.CharField(blank=True, default="", max_length=64)),
                ("tier_price", models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ("variant_key", models.CharField(blank=True, default="", max_length=64)),
                (
                    "cart",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="lines",
                        to="cart.cart",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="cart_lines",
                        to="catalog.product",
                    ),
                ),
            ],
            options={
                "ordering": ["id"],
                "indexes": [models.Index(fields=["cart", "product"], name="cartline_cart_product_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("cart", "product", "variant_key"), name="unique_price_variant_per_cart"
                    ),
                    models.CheckConstraint(condition=models.Q(quantity__gte=1), name="cartline_quantity_positive"),
                    models.CheckConstraint(
                        condition=(
                            models.Q(
                                price_kind="fixed",
                                fixed_price__isnull=False,
                                tier_price__isnull=True,
                                tier_unit="",
                            )
                            | (
                                models.Q(price_kind="tier", fixed_price__isnull=True, tier_price__isnull=False)
                                & ~models.Q(tier_unit="")
                            )
                        ),
                        name="cartline_exactly_one_price",
                    ),
                ],
            },
        ),
    ]
