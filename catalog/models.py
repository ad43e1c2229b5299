"""Catalog app models.

Only the parts of a product the checkout engine prices against: a shipping
weight and either a fixed unit price or a set of named price tiers
(e.g. "1kg", "basket", "crate").
"""

from common.choices import DraftPublished
from django.db import models


class TimeStampedModel(models.Model):
    """Abstract base model adding created/updated timestamps."""

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True


class Product(TimeStampedModel):
    """Sellable product.

    `has_fixed_price` products are sold at `fixed_price` per unit; the rest
    must be bought through one of their `price_tiers`.
    """

    STATUS_DRAFT = DraftPublished.DRAFT
    STATUS_PUBLISHED = DraftPublished.PUBLISHED
    STATUS_CHOICES = DraftPublished.choices

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True)
    sku = models.CharField(max_length=64, unique=True)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_PUBLISHED, db_index=True)
    weight_kg = models.DecimalField(max_digits=8, decimal_places=3, default=0)
    has_fixed_price = models.BooleanField(default=True)
    fixed_price = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)

    class Meta:
        ordering = ["title"]
        constraints = [
            models.CheckConstraint(
                name="product_fixed_price_non_negative",
                condition=models.Q(fixed_price__gte=0) | models.Q(fixed_price__isnull=True),
            ),
            models.CheckConstraint(
                name="product_weight_non_negative",
                condition=models.Q(weight_kg__gte=0),
            ),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.title} [{self.sku}]"

    def tier_price(self, unit: str):
        """Return the declared tier matching `unit` (case-insensitive), or None."""

        wanted = (unit or "").strip().lower()
        if not wanted:
            return None
        for tier in self.price_tiers.all():
            if tier.unit.strip().lower() == wanted:
                return tier
        return None


class PriceTier(TimeStampedModel):
    """Named unit price for a product without a fixed price."""

    product = models.ForeignKey(Product, related_name="price_tiers", on_delete=models.CASCADE)
    unit = models.CharField(max_length=64)
    price = models.DecimalField(max_digits=12, decimal_places=2)
    sort_order = models.IntegerField(default=0)

    class Meta:
        ordering = ["sort_order", "id"]
        constraints = [
            models.UniqueConstraint(fields=["product", "unit"], name="unique_tier_unit_per_product"),
            models.CheckConstraint(name="tier_price_non_negative", condition=models.Q(price__gte=0)),
        ]

    def __str__(self) -> str:  # pragma: no cover
        return f"{self.product_id}:{self.unit}={self.price}"
