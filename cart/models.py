"""Cart app models.

A cart belongs to exactly one owner at a time, keyed by the owner's identity
key (`anon:<token>` or `acct:<account id>`). Lines are priced either at a
fixed unit price or through one of the product's price tiers, never both.
"""

from decimal import Decimal

from common.choices import PriceKind
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Cart(TimeStampedModel):
    """Shopping cart bound to an anonymous token or an account."""

    owner_key = models.CharField(max_length=128, unique=True)

    class Meta:
        ordering = ["-updated_at"]

    def __str__(self) -> str:  # pragma: no cover
        return f"Cart#{self.id} ({self.owner_key})"

    @property
    def is_guest(self) -> bool:
        return self.owner_key.startswith("anon:")


class CartLine(TimeStampedModel):
    """Line item in a shopping cart.

    `variant_key` is "" for fixed-price lines and the lower-cased tier unit
    otherwise; it lets merges coalesce lines per (product, price variant).
    """

    PRICE_FIXED = PriceKind.FIXED
    PRICE_TIER = PriceKind.TIER
    PRICE_CHOICES = PriceKind.choices

    cart = models.ForeignKey(Cart, related_name="lines", on_delete=models.CASCADE)
    product = models.ForeignKey("catalog.Product", related_name="cart_lines", on_delete=models.CASCADE)
    quantity = models.PositiveIntegerField(default=1)
    price_kind = models.CharField(max_length=8, choices=PRICE_CHOICES)
    fixed_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    tier_unit = models.CharField(max_length=64, blank=True, default="")
    tier_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    variant_key = models.CharField(max_length=64, blank=True, default="")

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(fields=["cart", "product", "variant_key"], name="unique_price_variant_per_cart"),
            models.CheckConstraint(name="cartline_quantity_positive", condition=models.Q(quantity__gte=1)),
            models.CheckConstraint(
                name="cartline_exactly_one_price",
                condition=(
                    models.Q(
                        price_kind=PriceKind.FIXED,
                        fixed_price__isnull=False,
                        tier_price__isnull=True,
                        tier_unit="",
                    )
                    | (
                        models.Q(price_kind=PriceKind.TIER, fixed_price__isnull=True, tier_price__isnull=False)
                        & ~models.Q(tier_unit="")
                    )
                ),
            ),
        ]
        indexes = [
            models.Index(fields=["cart", "product"], name="cartline_cart_product_idx"),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"CartLine#{self.id} cart={self.cart_id} product={self.product_id} qty={self.quantity}"

    @property
    def unit_price(self) -> Decimal:
        if self.price_kind == self.PRICE_TIER:
            return self.tier_price or Decimal("0.00")
        return self.fixed_price or Decimal("0.00")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * Decimal(int(self.quantity))
