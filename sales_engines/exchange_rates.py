"""
sales_engines.exchange_rates -- Exchange-rate resolution and re-pricing.

Responsibility:
    Resolve the effective rate of a currency from document-local overrides
    and official (ERP) rates, rescale prices between currencies, and guard
    edits to the rate rows of a document.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Precedence: a document override with rate > 0 wins; otherwise the
      official rate (rate > 0); otherwise unresolved (None).  A zero
      override counts as absent.
    - Fail-soft: re-pricing never raises on an unresolved rate; the prior
      price is kept.
    - The active currency's row cannot be edited while the document has
      lines (single-currency-per-document assumption).

Failure modes:
    - ``ExchangeRateInUseError`` from ``edit_override`` on a locked row.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import Iterable, Sequence

from sales_engines.line_calculator import compute_line_totals
from sales_engines.tracer import traced_engine
from sales_kernel.domain.document import (
    DocumentLine,
    ExchangeRateOverride,
    OfficialRate,
    new_line_id,
    to_decimal,
)
from sales_kernel.exceptions import ExchangeRateInUseError
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.exchange_rates")


def resolve_rate(
    currency_code: str | None,
    overrides: Sequence[ExchangeRateOverride] = (),
    official_rates: Sequence[OfficialRate] = (),
) -> Decimal | None:
    """Return the effective rate of ``currency_code`` or None.

    None means "cannot re-price"; callers keep the prior price.
    """
    if not currency_code:
        return None
    for override in overrides:
        if override.currency == currency_code:
            if override.exchange_rate > 0:
                return override.exchange_rate
            break
    for official in official_rates:
        if official.matches(currency_code) and official.rate > 0:
            return official.rate
    logger.debug("exchange_rate_unresolved", extra={"currency": currency_code})
    return None


@traced_engine(
    "exchange_rates.convert_price",
    "1.0",
    fingerprint_fields=("price", "price_currency", "target_currency"),
)
def convert_price(
    price: Decimal,
    price_currency: str | None,
    target_currency: str | None,
    overrides: Sequence[ExchangeRateOverride] = (),
    official_rates: Sequence[OfficialRate] = (),
) -> Decimal:
    """Rescale a price quoted in ``price_currency`` into ``target_currency``.

    ``price x resolve(target) / resolve(price_currency)``.  Returns the
    price unchanged when the currencies match or either rate is unresolved.
    """
    price = to_decimal(price)
    if not target_currency or not price_currency or price_currency == target_currency:
        return price
    source_rate = resolve_rate(price_currency, overrides, official_rates)
    target_rate = resolve_rate(target_currency, overrides, official_rates)
    if source_rate is None or target_rate is None:
        logger.warning(
            "price_conversion_skipped",
            extra={
                "price_currency": price_currency,
                "target_currency": target_currency,
            },
        )
        return price
    return price * target_rate / source_rate


def currency_change_ratio(
    old_currency: str | None,
    new_currency: str | None,
    overrides: Sequence[ExchangeRateOverride] = (),
    official_rates: Sequence[OfficialRate] = (),
) -> Decimal | None:
    """Factor applied to unit prices when the document currency changes.

    ``resolve(old) / resolve(new)``; None when either side is unresolved or
    there is nothing to convert.
    """
    if not old_currency or not new_currency or old_currency == new_currency:
        return None
    old_rate = resolve_rate(old_currency, overrides, official_rates)
    new_rate = resolve_rate(new_currency, overrides, official_rates)
    if old_rate is None or new_rate is None:
        return None
    return old_rate / new_rate


@traced_engine("exchange_rates.reprice", "1.0")
def reprice_for_currency_change(
    lines: Sequence[DocumentLine],
    old_currency: str | None,
    new_currency: str | None,
    overrides: Sequence[ExchangeRateOverride] = (),
    official_rates: Sequence[OfficialRate] = (),
) -> tuple[DocumentLine, ...]:
    """Rescale every line's unit price for a document currency change.

    Lines are returned unchanged (same objects) when the ratio cannot be
    resolved.
    """
    ratio = currency_change_ratio(old_currency, new_currency, overrides, official_rates)
    if ratio is None:
        return tuple(lines)

    def _rescale(line: DocumentLine) -> DocumentLine:
        related = tuple(_rescale(r) for r in line.related_lines)
        return compute_line_totals(
            replace(line, unit_price=line.unit_price * ratio, related_lines=related)
        )

    logger.info(
        "document_repriced",
        extra={
            "old_currency": old_currency,
            "new_currency": new_currency,
            "ratio": ratio,
            "line_count": len(lines),
        },
    )
    return tuple(_rescale(line) for line in lines)


def effective_rates(
    official_rates: Iterable[OfficialRate],
    overrides: Sequence[ExchangeRateOverride] = (),
) -> dict[int, Decimal]:
    """Official rates by rate type, with document overrides applied."""
    result: dict[int, Decimal] = {}
    for official in official_rates:
        override = next(
            (
                o
                for o in overrides
                if o.currency == str(official.rate_type)
                or (o.rate_type is not None and o.rate_type == official.rate_type)
            ),
            None,
        )
        if override is not None and override.exchange_rate > 0:
            result[official.rate_type] = override.exchange_rate
        else:
            result[official.rate_type] = official.rate
    return result


def is_currency_in_use(
    currency: str, active_currency: str | None, has_lines: bool
) -> bool:
    """True if ``currency`` is the active document currency and lines use it."""
    return bool(has_lines and active_currency and currency == active_currency)


def edit_override(
    overrides: Sequence[ExchangeRateOverride],
    currency: str,
    exchange_rate: Decimal | int | str,
    active_currency: str | None = None,
    has_lines: bool = False,
) -> tuple[ExchangeRateOverride, ...]:
    """Set a document-local rate for ``currency``.

    The edited row stops being official.  A row is appended when the
    currency has none yet.

    Raises:
        ExchangeRateInUseError: if ``currency`` is the active currency of a
            document that has lines.
    """
    if is_currency_in_use(currency, active_currency, has_lines):
        raise ExchangeRateInUseError(currency)
    rate = to_decimal(exchange_rate)
    updated: list[ExchangeRateOverride] = []
    found = False
    for override in overrides:
        if override.currency == currency:
            updated.append(replace(override, exchange_rate=rate, is_official=False))
            found = True
        else:
            updated.append(override)
    if not found:
        updated.append(
            ExchangeRateOverride(
                local_id=new_line_id(f"rate-{currency}"),
                currency=currency,
                exchange_rate=rate,
                is_official=False,
            )
        )
    return tuple(updated)
