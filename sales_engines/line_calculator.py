"""
Line Calculator - Turn a line's raw inputs into totals.

Pure functions with no I/O.  All arithmetic is Decimal; nothing is rounded
inside the cascade so that rounding error cannot compound across the three
discount steps.  ``round_money`` is applied where values leave the engine
(wire payloads, display).

Algorithm:
    gross        = quantity x unit_price
    afterD1      = gross   x (1 - d1%)
    afterD2      = afterD1 x (1 - d2%)
    afterD3      = afterD2 x (1 - d3%)
    line_total   = afterD3
    vat_amount   = line_total x vat_rate%
    grand_total  = line_total + vat_amount

Discount rate and amount of each slot are mutually derived against the
gross amount: a RATE slot recomputes its amount, an AMOUNT slot (the user
typed a fixed amount) recomputes its rate.

Usage:
    from decimal import Decimal
    from sales_engines.line_calculator import compute_line_totals

    line = compute_line_totals(line)
    print(line.line_total)        # 855
    print(line.line_grand_total)  # 1008.90
"""

from __future__ import annotations

from dataclasses import replace
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from sales_engines.tracer import traced_engine
from sales_kernel.domain.document import (
    DISCOUNT_SLOTS,
    HUNDRED,
    ZERO,
    DiscountBasis,
    DocumentLine,
    DocumentTotals,
    to_decimal,
)
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.line_calculator")

MONEY_PLACES = 2


def quantize(value: Decimal, places: int, rounding: str = ROUND_HALF_UP) -> Decimal:
    """Round ``value`` to ``places`` decimal places."""
    return value.quantize(Decimal(1).scaleb(-places), rounding=rounding)


def round_money(
    value: Decimal, places: int = MONEY_PLACES, rounding: str = ROUND_HALF_UP
) -> Decimal:
    """Round a monetary value for persistence or display."""
    return quantize(value, places, rounding)


def clamp_discount_rate(
    rate: Decimal | int | float | str | None,
    minimum: Decimal = ZERO,
    maximum: Decimal = HUNDRED,
) -> Decimal:
    """Clamp a user-entered discount rate into [minimum, maximum].

    Blank or unparsable input counts as zero.
    """
    try:
        value = to_decimal(rate)
    except ValueError:
        value = ZERO
    if value.is_nan():
        value = ZERO
    return max(minimum, min(maximum, value))


@traced_engine("line_calculator", "1.0")
def compute_line_totals(line: DocumentLine) -> DocumentLine:
    """Recompute discount amounts/rates, VAT and totals of one line.

    Pure and idempotent: calling it on its own output returns an equal line.
    A line without a product yields all-zero amounts and totals.
    """
    if line.product is None:
        return replace(
            line,
            discount_amount1=ZERO,
            discount_amount2=ZERO,
            discount_amount3=ZERO,
            vat_amount=ZERO,
            line_total=ZERO,
            line_grand_total=ZERO,
        )

    gross = line.quantity * line.unit_price
    changes: dict[str, Decimal] = {}
    running = gross
    for slot in DISCOUNT_SLOTS:
        rate, amount = _derive_discount(
            basis=line.discount_basis(slot),
            rate=line.discount_rate(slot),
            amount=line.discount_amount(slot),
            gross=gross,
        )
        changes[f"discount_rate{slot}"] = rate
        changes[f"discount_amount{slot}"] = amount
        running = running * (1 - rate / HUNDRED)

    line_total = running
    vat_amount = line_total * line.vat_rate / HUNDRED
    return replace(
        line,
        **changes,
        line_total=line_total,
        vat_amount=vat_amount,
        line_grand_total=line_total + vat_amount,
    )


def _derive_discount(
    basis: DiscountBasis,
    rate: Decimal,
    amount: Decimal,
    gross: Decimal,
) -> tuple[Decimal, Decimal]:
    if basis == DiscountBasis.AMOUNT:
        if gross == 0:
            return ZERO, amount
        return amount / gross * HUNDRED, amount
    return rate, gross * rate / HUNDRED


def set_discount_rate(line: DocumentLine, slot: int, rate: Decimal | int | str) -> DocumentLine:
    """Fix a slot's rate; its amount is derived from now on."""
    return _set_discount(line, slot, DiscountBasis.RATE, rate=to_decimal(rate))


def set_discount_amount(
    line: DocumentLine, slot: int, amount: Decimal | int | str
) -> DocumentLine:
    """Fix a slot's amount; its rate is derived from now on."""
    return _set_discount(line, slot, DiscountBasis.AMOUNT, amount=to_decimal(amount))


def _set_discount(
    line: DocumentLine,
    slot: int,
    basis: DiscountBasis,
    rate: Decimal | None = None,
    amount: Decimal | None = None,
) -> DocumentLine:
    if slot not in DISCOUNT_SLOTS:
        raise ValueError(f"Discount slot must be 1, 2 or 3, got {slot}")
    bases = list(line.discount_bases)
    bases[slot - 1] = basis
    changes: dict[str, object] = {"discount_bases": tuple(bases)}
    if rate is not None:
        changes[f"discount_rate{slot}"] = rate
    if amount is not None:
        changes[f"discount_amount{slot}"] = amount
    return compute_line_totals(replace(line, **changes))


def update_line(line: DocumentLine, **changes: object) -> DocumentLine:
    """Apply field changes and recompute totals."""
    return compute_line_totals(replace(line, **changes))


@traced_engine("document_totals", "1.0")
def calculate_document_totals(lines: Iterable[DocumentLine]) -> DocumentTotals:
    """Sum line totals across a document.

    Nested ``related_lines`` are not counted; related lines appear in the
    flat list on their own.
    """
    subtotal = ZERO
    total_vat = ZERO
    grand_total = ZERO
    count = 0
    for line in lines:
        subtotal += line.line_total
        total_vat += line.vat_amount
        grand_total += line.line_grand_total
        count += 1
    logger.debug(
        "document_totals_calculated",
        extra={"line_count": count, "grand_total": grand_total},
    )
    return DocumentTotals(
        subtotal=subtotal, total_vat=total_vat, grand_total=grand_total
    )
