"""
Pricing Rules - Apply list prices and customer pricing rules to a line.

Pure functions with no I/O.

A product's list price arrives in the currency it is quoted in and is
converted into the document currency with
``sales_engines.exchange_rates.convert_price``.  List discounts, when the
price carries them, fill the discount slots.  A pricing rule for the stock
whose quantity band covers the line's quantity then wins over both: its
fixed unit price (if any) replaces the price and its three discount rates
replace the slots.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Sequence

from sales_engines.exchange_rates import convert_price
from sales_engines.line_calculator import compute_line_totals
from sales_engines.tracer import traced_engine
from sales_kernel.domain.document import (
    DiscountBasis,
    DocumentLine,
    ExchangeRateOverride,
    OfficialRate,
    to_decimal,
)
from sales_kernel.domain.pricing import PricingRuleLine, ProductPrice
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.pricing_rules")

_ONE = Decimal("1")
_RATE_BASES = (DiscountBasis.RATE, DiscountBasis.RATE, DiscountBasis.RATE)


def find_matching_rule(
    rules: Sequence[PricingRuleLine],
    stock_code: str | None,
    quantity: Decimal | int | str | None,
) -> PricingRuleLine | None:
    """First rule for ``stock_code`` whose band covers ``quantity``.

    A blank or zero quantity is matched as 1.
    """
    if not stock_code:
        return None
    try:
        qty = to_decimal(quantity)
    except ValueError:
        qty = None
    if not qty:
        qty = _ONE
    for rule in rules:
        if rule.stock_code == stock_code and rule.covers(qty):
            return rule
    return None


@traced_engine("pricing_rules.apply_rule", "1.0", fingerprint_fields=("rules",))
def apply_pricing_rule(
    line: DocumentLine, rules: Sequence[PricingRuleLine]
) -> DocumentLine:
    """Apply the matching pricing rule to ``line``; unchanged when none."""
    if line.product is None:
        return line
    rule = find_matching_rule(rules, line.product.product_code, line.quantity)
    if rule is None:
        return line
    logger.debug(
        "pricing_rule_applied",
        extra={
            "local_id": line.local_id,
            "pricing_rule_header_id": rule.pricing_rule_header_id,
        },
    )
    unit_price = line.unit_price
    if rule.fixed_unit_price is not None:
        unit_price = rule.fixed_unit_price
    return compute_line_totals(
        replace(
            line,
            unit_price=unit_price,
            discount_rate1=rule.discount_rate1,
            discount_rate2=rule.discount_rate2,
            discount_rate3=rule.discount_rate3,
            discount_bases=_RATE_BASES,
            pricing_rule_header_id=rule.pricing_rule_header_id,
        )
    )


@traced_engine("pricing_rules.apply_price", "1.0")
def apply_product_price(
    line: DocumentLine,
    price: ProductPrice | None,
    document_currency: str | None,
    overrides: Sequence[ExchangeRateOverride] = (),
    official_rates: Sequence[OfficialRate] = (),
    rules: Sequence[PricingRuleLine] = (),
) -> DocumentLine:
    """Price a line from its list price, then apply any pricing rule.

    A missing price leaves the unit price as it is.
    """
    if price is not None:
        unit_price = convert_price(
            price.list_price,
            price.currency,
            document_currency,
            overrides,
            official_rates,
        )
        changes: dict[str, object] = {"unit_price": unit_price}
        bases = list(line.discount_bases)
        for slot, discount in enumerate(price.discounts, start=1):
            if discount is not None:
                changes[f"discount_rate{slot}"] = discount
                bases[slot - 1] = DiscountBasis.RATE
        changes["discount_bases"] = tuple(bases)
        line = compute_line_totals(replace(line, **changes))
    return apply_pricing_rule(line, rules)
