"""
Exchange-rate mapping between server records and document rate rows.

The document service stores a rate row's currency either as a currency code
(``USD``) or as the numeric ERP currency type (``"1"``).  Rows are
normalized to the stringified rate type whenever a currency option matches,
so that rows and official rates compare equal.  ZERO I/O.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from sales_kernel.domain.document import (
    CurrencyOption,
    ExchangeRateOverride,
    OfficialRate,
    existing_rate_id,
    new_line_id,
    to_decimal,
)
from sales_kernel.domain.document_kind import DocumentKind
from sales_mapping.values import format_date, parse_date, to_wire_number


def currency_options_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[CurrencyOption, ...]:
    """Currency options from the ERP reference list (``dovizTipi`` keyed)."""
    return tuple(
        CurrencyOption(
            code=r["code"],
            rate_type=int(r["dovizTipi"]),
            name=r.get("dovizIsmi"),
        )
        for r in records
    )


def official_rates_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[OfficialRate, ...]:
    """Official rates from the ERP rate list."""
    return tuple(
        OfficialRate(
            rate_type=int(r["dovizTipi"]),
            rate=to_decimal(r.get("kurDegeri")),
            name=r.get("dovizIsmi"),
            rate_date=parse_date(r.get("tarih")),
        )
        for r in records
    )


def find_currency_option(
    currency: str | int | None, options: Sequence[CurrencyOption]
) -> CurrencyOption | None:
    """Option whose code or rate type matches ``currency``."""
    if currency is None:
        return None
    text = str(currency)
    for option in options:
        if option.code == text or str(option.rate_type) == text:
            return option
    return None


def currency_code_for(
    rate_type_or_code: str | int | None, options: Sequence[CurrencyOption]
) -> str | None:
    """Currency code for a rate type (or code); the input itself if unknown."""
    option = find_currency_option(rate_type_or_code, options)
    if option is not None:
        return option.code
    return None if rate_type_or_code is None else str(rate_type_or_code)


def rates_from_detail(
    records: Iterable[Mapping[str, Any]],
    currency_options: Sequence[CurrencyOption] = (),
) -> tuple[ExchangeRateOverride, ...]:
    """Rate rows from server records.

    The currency becomes ``str(rate_type)`` when an option matches by code
    or rate type; otherwise the raw server string is kept.
    """
    rows: list[ExchangeRateOverride] = []
    for r in records:
        option = find_currency_option(r.get("currency"), currency_options)
        rows.append(
            ExchangeRateOverride(
                local_id=existing_rate_id(r["id"]),
                currency=str(option.rate_type) if option else str(r.get("currency") or ""),
                exchange_rate=to_decimal(r.get("exchangeRate")),
                exchange_rate_date=parse_date(r.get("exchangeRateDate")),
                is_official=bool(r.get("isOfficial")),
                rate_type=option.rate_type if option else None,
            )
        )
    return tuple(rows)


def rates_from_official(
    official_rates: Iterable[OfficialRate], rate_date: date | None = None
) -> tuple[ExchangeRateOverride, ...]:
    """Initial rate rows for a new document, copied from official rates."""
    return tuple(
        ExchangeRateOverride(
            local_id=new_line_id(f"rate-{official.rate_type}"),
            currency=str(official.rate_type),
            exchange_rate=official.rate,
            exchange_rate_date=rate_date or official.rate_date,
            is_official=True,
            rate_type=official.rate_type,
        )
        for official in official_rates
    )


def rates_to_create_dtos(
    rates: Iterable[ExchangeRateOverride], document_id: int, kind: DocumentKind
) -> list[dict[str, Any]]:
    return [
        {
            kind.parent_id_field: document_id,
            "currency": rate.currency,
            "exchangeRate": to_wire_number(rate.exchange_rate),
            "exchangeRateDate": format_date(rate.exchange_rate_date),
            "isOfficial": rate.is_official,
        }
        for rate in rates
    ]


def rates_to_update_dtos(
    rates: Iterable[ExchangeRateOverride],
    document_id: int,
    offer_no: str | None,
    kind: DocumentKind,
) -> list[dict[str, Any]]:
    """Update DTOs for the document's rate rows; new rows carry id 0."""
    return [
        {
            "id": rate.server_id or 0,
            kind.parent_id_field: document_id,
            kind.offer_no_field: offer_no,
            "currency": rate.currency,
            "exchangeRate": to_wire_number(rate.exchange_rate),
            "exchangeRateDate": format_date(rate.exchange_rate_date),
            "isOfficial": rate.is_official,
        }
        for rate in rates
    ]
