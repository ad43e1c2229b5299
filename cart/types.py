"""Read models returned by cart services.

Totals are properties over the line list, so they are recomputed on every
access and can never drift from the lines they summarise.
"""

from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Optional

from common.choices import PriceKind

SOURCE_DB = "db"
SOURCE_LOCAL = "local"


def _dec(value) -> Optional[Decimal]:
    return None if value in (None, "") else Decimal(str(value))


@dataclass
class CartLineView:
    id: int
    product_id: int
    quantity: int
    price_kind: str
    fixed_price: Optional[Decimal] = None
    tier_unit: str = ""
    tier_price: Optional[Decimal] = None
    weight_kg: Decimal = Decimal("0")
    title: str = ""
    sku: str = ""

    @property
    def variant_key(self) -> str:
        return (self.tier_unit or "").strip().lower() if self.price_kind == PriceKind.TIER else ""

    @property
    def unit_price(self) -> Decimal:
        price = self.tier_price if self.price_kind == PriceKind.TIER else self.fixed_price
        return price or Decimal("0.00")

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * Decimal(int(self.quantity))

    @property
    def line_weight(self) -> Decimal:
        return (self.weight_kg or Decimal("0")) * Decimal(int(self.quantity))

    @classmethod
    def from_line(cls, line) -> "CartLineView":
        return cls(
            id=line.id,
            product_id=line.product_id,
            quantity=int(line.quantity),
            price_kind=line.price_kind,
            fixed_price=line.fixed_price,
            tier_unit=line.tier_unit,
            tier_price=line.tier_price,
            weight_kg=line.product.weight_kg,
            title=line.product.title,
            sku=line.product.sku,
        )

    def to_cache(self) -> dict:
        data = asdict(self)
        for name in ("fixed_price", "tier_price", "weight_kg"):
            data[name] = None if data[name] is None else str(data[name])
        return data

    @classmethod
    def from_cache(cls, data: dict) -> "CartLineView":
        return cls(
            id=int(data["id"]),
            product_id=int(data["product_id"]),
            quantity=int(data["quantity"]),
            price_kind=data["price_kind"],
            fixed_price=_dec(data.get("fixed_price")),
            tier_unit=data.get("tier_unit") or "",
            tier_price=_dec(data.get("tier_price")),
            weight_kg=_dec(data.get("weight_kg")) or Decimal("0"),
            title=data.get("title") or "",
            sku=data.get("sku") or "",
        )


@dataclass
class CartView:
    owner_key: str
    lines: list = field(default_factory=list)
    source: str = SOURCE_DB

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0.00"))

    @property
    def item_count(self) -> int:
        return sum(int(line.quantity) for line in self.lines)

    @property
    def total_weight(self) -> Decimal:
        return sum((line.line_weight for line in self.lines), Decimal("0"))

    @property
    def is_empty(self) -> bool:
        return not self.lines
