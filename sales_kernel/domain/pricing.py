"""
Pricing reference types (``sales_kernel.domain.pricing``).

Read-only records fetched from the product/pricing and user services:
list prices, customer pricing rules, related-stock relations and
salesperson discount limits.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sales_kernel.domain.document import to_decimal


@dataclass(frozen=True)
class ProductPrice:
    """List price of a product in the currency it is quoted in."""

    product_code: str
    currency: str
    list_price: Decimal
    group_code: str | None = None
    cost_price: Decimal | None = None
    discount1: Decimal | None = None
    discount2: Decimal | None = None
    discount3: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "list_price", to_decimal(self.list_price))
        for name in ("cost_price", "discount1", "discount2", "discount3"):
            object.__setattr__(self, name, to_decimal(getattr(self, name), None))

    @property
    def discounts(self) -> tuple[Decimal | None, Decimal | None, Decimal | None]:
        return (self.discount1, self.discount2, self.discount3)


@dataclass(frozen=True)
class PricingRuleLine:
    """Customer/salesperson pricing rule for one stock and quantity band.

    ``max_quantity`` of None (or zero) leaves the band open-ended.
    """

    pricing_rule_header_id: int
    stock_code: str
    min_quantity: Decimal
    max_quantity: Decimal | None = None
    fixed_unit_price: Decimal | None = None
    currency_code: str | None = None
    discount_rate1: Decimal = Decimal("0")
    discount_rate2: Decimal = Decimal("0")
    discount_rate3: Decimal = Decimal("0")
    rule_line_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "min_quantity", to_decimal(self.min_quantity))
        object.__setattr__(self, "max_quantity", to_decimal(self.max_quantity, None))
        object.__setattr__(
            self, "fixed_unit_price", to_decimal(self.fixed_unit_price, None)
        )
        for name in ("discount_rate1", "discount_rate2", "discount_rate3"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))

    def covers(self, quantity: Decimal) -> bool:
        if quantity < self.min_quantity:
            return False
        if self.max_quantity and quantity > self.max_quantity:
            return False
        return True


@dataclass(frozen=True)
class StockRelation:
    """A related stock that is added together with its parent stock.

    ``quantity`` is the number of related units per unit of the parent.
    """

    relation_id: int
    related_stock_id: int
    related_stock_code: str
    quantity: Decimal
    related_stock_name: str | None = None
    group_code: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "quantity", to_decimal(self.quantity))


@dataclass(frozen=True)
class DiscountLimit:
    """Maximum discount rates a salesperson may grant for a product group.

    ``max_discount2`` / ``max_discount3`` of None mean the slot is unlimited.
    """

    erp_product_group_code: str
    max_discount1: Decimal
    max_discount2: Decimal | None = None
    max_discount3: Decimal | None = None
    salesperson_id: int | None = None
    salesperson_name: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "max_discount1", to_decimal(self.max_discount1))
        object.__setattr__(
            self, "max_discount2", to_decimal(self.max_discount2, None)
        )
        object.__setattr__(
            self, "max_discount3", to_decimal(self.max_discount3, None)
        )

    @property
    def maximums(self) -> tuple[Decimal, Decimal | None, Decimal | None]:
        return (self.max_discount1, self.max_discount2, self.max_discount3)
