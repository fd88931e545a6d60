"""
Wire value conversions shared by the mappers.  Pure functions, ZERO I/O.

Dates travel as ISO strings (the server may append a time part); numbers
travel as floats and are read back into ``Decimal`` via ``str()``.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sales_engines.line_calculator import MONEY_PLACES, quantize
from sales_kernel.logging_config import get_logger

logger = get_logger("mapping.values")

RATE_PLACES = 6


def parse_date(value: Any) -> date | None:
    """Date part of an ISO date or datetime string; None when blank."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text.split("T")[0])
    except ValueError:
        logger.warning("unparsable_date", extra={"value": text})
        return None


def format_date(value: date | None) -> str | None:
    return value.isoformat() if value is not None else None


def to_wire_number(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def to_wire_money(
    value: Decimal, places: int = MONEY_PLACES, rounding: str = ROUND_HALF_UP
) -> float:
    return float(quantize(value, places, rounding))


def to_wire_rate(
    value: Decimal, places: int = RATE_PLACES, rounding: str = ROUND_HALF_UP
) -> float:
    return float(quantize(value, places, rounding))
