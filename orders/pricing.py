"""Checkout pricing.

`price_cart` is pure: given the cart lines, the products they reference and
the destination, it always yields the same totals. It is re-run on every
submission; client-side totals are never trusted.
"""

from dataclasses import dataclass
from decimal import Decimal

from common.choices import PriceKind
from common.exceptions import InvalidAddress, InvalidCart, UnresolvablePrice, ValidationError
from django.conf import settings

ZERO = Decimal("0.00")


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    title: str
    sku: str
    quantity: int
    price_kind: str
    tier_unit: str
    unit_price: Decimal
    unit_weight: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def line_weight(self) -> Decimal:
        return self.unit_weight * self.quantity


@dataclass(frozen=True)
class PricedCart:
    lines: tuple
    subtotal: Decimal
    total_weight: Decimal
    shipping_fee: Decimal
    discount: Decimal

    @property
    def total(self) -> Decimal:
        return self.subtotal + self.shipping_fee - self.discount


def validate_shipping_address(address) -> dict:
    if not isinstance(address, dict) or not address:
        raise InvalidAddress("Shipping address is required")
    if not str(address.get("city") or "").strip():
        raise InvalidAddress("Shipping address must include a city")
    return address


def resolve_unit_price(line, product) -> tuple[str, str, Decimal]:
    """Resolve a line's price as (kind, tier unit, unit price).

    Priority: the line's fixed price, then its selected tier (which must be
    one of the product's declared tiers), then the product's own fixed price.
    A line carrying both a fixed and a tier price is rejected.
    """

    fixed_price = getattr(line, "fixed_price", None)
    tier_unit = (getattr(line, "tier_unit", "") or "").strip()
    tier_price = getattr(line, "tier_price", None)

    if fixed_price is not None and (tier_price is not None or tier_unit):
        raise UnresolvablePrice(f"{product.title} has both a fixed price and a price tier")
    if fixed_price is not None:
        return PriceKind.FIXED, "", Decimal(str(fixed_price))
    if tier_unit or tier_price is not None:
        tier = product.tier_price(tier_unit)
        if tier is None:
            raise UnresolvablePrice(f"'{tier_unit}' is not a price tier of {product.title}")
        return PriceKind.TIER, tier.unit, tier.price
    if product.has_fixed_price and product.fixed_price is not None:
        return PriceKind.FIXED, "", product.fixed_price
    raise UnresolvablePrice(f"No price available for {product.title}")


def zone_surcharge(address: dict) -> Decimal:
    surcharges = settings.DELIVERY_ZONE_SURCHARGES
    for field in ("state", "city"):
        zone = str(address.get(field) or "").strip().lower()
        if zone in surcharges:
            return Decimal(surcharges[zone])
    return ZERO


def delivery_fee(total_weight: Decimal, address: dict) -> Decimal:
    """Weight-tier fee plus any surcharge for the destination.

    Weights above the heaviest tier pay the heaviest tier's fee.
    """

    if total_weight <= 0:
        raise InvalidCart("Cart weight must be positive")
    tiers = settings.DELIVERY_WEIGHT_TIERS
    fee = next((tier_fee for max_kg, tier_fee in tiers if total_weight <= max_kg), tiers[-1][1])
    return Decimal(fee) + zone_surcharge(address)


def price_cart(lines, products: dict, address: dict, discount: Decimal = ZERO) -> PricedCart:
    """Price `lines` against `products` (id -> Product) for delivery to `address`."""

    priced = []
    for line in lines:
        product = products.get(int(line.product_id))
        if product is None:
            raise InvalidCart(f"Product {line.product_id} is no longer available")
        quantity = int(line.quantity)
        if quantity <= 0:
            raise InvalidCart(f"Quantity for {product.title} must be positive")
        if not product.weight_kg or product.weight_kg <= 0:
            raise InvalidCart(f"{product.title} has no shipping weight")
        kind, unit, unit_price = resolve_unit_price(line, product)
        priced.append(
            PricedLine(
                product_id=product.id,
                title=product.title,
                sku=product.sku,
                quantity=quantity,
                price_kind=kind,
                tier_unit=unit,
                unit_price=unit_price,
                unit_weight=product.weight_kg,
            )
        )

    subtotal = sum((line.line_total for line in priced), ZERO)
    total_weight = sum((line.line_weight for line in priced), Decimal("0"))
    shipping_fee = delivery_fee(total_weight, address)
    discount = Decimal(str(discount or 0))
    if discount < 0 or discount > subtotal + shipping_fee:
        raise ValidationError("Discount is out of range", code="invalid_discount")
    return PricedCart(
        lines=tuple(priced),
        subtotal=subtotal,
        total_weight=total_weight,
        shipping_fee=shipping_fee,
        discount=discount,
    )
