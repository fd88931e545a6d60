"""
Document domain types (``sales_kernel.domain.document``).

Responsibility
--------------
Pure value objects for an editable sales document: lines, product
references, related-product group entries, exchange-rate rows, currency
options and the document header.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``sales_services`` or ``sales_mapping``.

Invariants enforced
-------------------
* Every numeric field is a ``Decimal`` -- ints, floats and strings are
  coerced through ``str()`` at construction, never through float math.
* Lines are frozen; edits go through ``dataclasses.replace`` and yield a
  new object.
* Within a group sharing ``related_product_key`` exactly one line has
  ``is_main_related_product=True`` (enforced by the grouping engine, which
  falls back to the first line by id when the data has none).
* Local ids: ``line-<n>`` marks a line persisted under server id ``n``;
  ``temp-<token>`` marks a line that only exists client-side.
"""

from __future__ import annotations

import itertools
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum, IntEnum
from typing import Any, Literal

ZERO = Decimal("0")
HUNDRED = Decimal("100")

EXISTING_LINE_PREFIX = "line-"
NEW_LINE_PREFIX = "temp-"
EXISTING_RATE_PREFIX = "rate-"
MAIN_GROUP_PREFIX = "main-"
STANDALONE_GROUP_PREFIX = "standalone-"

_EXISTING_LINE_RE = re.compile(r"^line-(\d+)$")
_EXISTING_RATE_RE = re.compile(r"^rate-(\d+)$")
_temp_counter = itertools.count(1)


def to_decimal(value: Any, default: Decimal | None = ZERO) -> Decimal | None:
    """Coerce a wire/user value to Decimal via ``str()``.

    ``None`` and empty strings map to ``default``.

    Raises:
        ValueError: if the value is not numeric.
    """
    if value is None:
        return default
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid numeric value: {value!r}")
    text = str(value).strip()
    if text == "":
        return default
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise ValueError(f"Invalid numeric value: {value!r}") from e


# ---------------------------------------------------------------------------
# Local identity
# ---------------------------------------------------------------------------


def existing_line_id(server_id: int) -> str:
    """Local id for a line persisted under ``server_id``."""
    return f"{EXISTING_LINE_PREFIX}{server_id}"


def new_line_id(token: str | int | None = None) -> str:
    """Local id for a line that has not been persisted yet."""
    if token is None:
        token = next(_temp_counter)
    return f"{NEW_LINE_PREFIX}{token}"


def parse_line_id(local_id: str | None) -> int | None:
    """Server id encoded in a ``line-<n>`` local id, or None for new lines."""
    match = _EXISTING_LINE_RE.match(str(local_id or ""))
    if match is None:
        return None
    server_id = int(match.group(1))
    return server_id if server_id > 0 else None


def existing_rate_id(server_id: int) -> str:
    return f"{EXISTING_RATE_PREFIX}{server_id}"


def parse_rate_id(local_id: str | None) -> int | None:
    match = _EXISTING_RATE_RE.match(str(local_id or ""))
    if match is None:
        return None
    server_id = int(match.group(1))
    return server_id if server_id > 0 else None


def main_group_key(stock_id: int) -> str:
    """Group key for a bundle added from stock ``stock_id``."""
    return f"{MAIN_GROUP_PREFIX}{stock_id}"


# ---------------------------------------------------------------------------
# Line status enums
# ---------------------------------------------------------------------------


class LineApprovalStatus(IntEnum):
    """Per-line approval flag written by the discount-limit check."""

    NOT_REQUIRED = 0
    REQUIRED = 1


class DiscountBasis(str, Enum):
    """Which side of a discount slot the user fixed.

    RATE: the amount is derived from the rate.
    AMOUNT: the rate is derived from the fixed amount.
    """

    RATE = "rate"
    AMOUNT = "amount"


DISCOUNT_SLOTS = (1, 2, 3)


# ---------------------------------------------------------------------------
# Product reference
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProductRef:
    """Reference to the product a line sells."""

    product_code: str
    product_name: str
    product_id: int | None = None
    group_code: str | None = None


# ---------------------------------------------------------------------------
# Document line
# ---------------------------------------------------------------------------

_DECIMAL_FIELDS = (
    "quantity",
    "unit_price",
    "discount_rate1",
    "discount_amount1",
    "discount_rate2",
    "discount_amount2",
    "discount_rate3",
    "discount_amount3",
    "vat_rate",
    "vat_amount",
    "line_total",
    "line_grand_total",
)


@dataclass(frozen=True)
class DocumentLine:
    """One product entry on a demand, order or quotation.

    Totals (``discount_amount*`` for RATE slots, ``vat_amount``,
    ``line_total``, ``line_grand_total``) are outputs of
    ``sales_engines.line_calculator.compute_line_totals``; constructing a
    line does not recompute them.
    """

    local_id: str
    product: ProductRef | None = None
    quantity: Decimal = ZERO
    unit_price: Decimal = ZERO
    discount_rate1: Decimal = ZERO
    discount_amount1: Decimal = ZERO
    discount_rate2: Decimal = ZERO
    discount_amount2: Decimal = ZERO
    discount_rate3: Decimal = ZERO
    discount_amount3: Decimal = ZERO
    discount_bases: tuple[DiscountBasis, DiscountBasis, DiscountBasis] = (
        DiscountBasis.RATE,
        DiscountBasis.RATE,
        DiscountBasis.RATE,
    )
    vat_rate: Decimal = ZERO
    vat_amount: Decimal = ZERO
    line_total: Decimal = ZERO
    line_grand_total: Decimal = ZERO
    description: str | None = None
    pricing_rule_header_id: int | None = None
    related_stock_id: int | None = None
    related_product_key: str | None = None
    is_main_related_product: bool = False
    approval_status: int = LineApprovalStatus.NOT_REQUIRED
    relation_quantity: Decimal | None = None
    is_editing: bool = False
    related_lines: tuple[DocumentLine, ...] = ()

    def __post_init__(self) -> None:
        for name in _DECIMAL_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, to_decimal(value))
        if self.relation_quantity is not None and not isinstance(
            self.relation_quantity, Decimal
        ):
            object.__setattr__(
                self, "relation_quantity", to_decimal(self.relation_quantity)
            )
        if len(self.discount_bases) != 3:
            raise ValueError("discount_bases must have exactly three entries")
        object.__setattr__(
            self,
            "discount_bases",
            tuple(DiscountBasis(b) for b in self.discount_bases),
        )
        if not isinstance(self.related_lines, tuple):
            object.__setattr__(self, "related_lines", tuple(self.related_lines))
        if self.related_product_key is not None:
            key = self.related_product_key.strip()
            object.__setattr__(self, "related_product_key", key or None)

    # -- identity -----------------------------------------------------------

    @property
    def server_id(self) -> int | None:
        """Server-assigned id, or None if the line was never persisted."""
        return parse_line_id(self.local_id)

    @property
    def is_new(self) -> bool:
        return self.server_id is None

    # -- grouping -----------------------------------------------------------

    @property
    def is_grouped(self) -> bool:
        return self.related_product_key is not None

    @property
    def group_code(self) -> str | None:
        return self.product.group_code if self.product else None

    # -- discounts ----------------------------------------------------------

    def discount_rate(self, slot: int) -> Decimal:
        _check_slot(slot)
        return getattr(self, f"discount_rate{slot}")

    def discount_amount(self, slot: int) -> Decimal:
        _check_slot(slot)
        return getattr(self, f"discount_amount{slot}")

    def discount_basis(self, slot: int) -> DiscountBasis:
        _check_slot(slot)
        return self.discount_bases[slot - 1]

    @property
    def discount_rates(self) -> tuple[Decimal, Decimal, Decimal]:
        return (self.discount_rate1, self.discount_rate2, self.discount_rate3)

    @property
    def requires_approval(self) -> bool:
        return self.approval_status == LineApprovalStatus.REQUIRED


def _check_slot(slot: int) -> None:
    if slot not in DISCOUNT_SLOTS:
        raise ValueError(f"Discount slot must be 1, 2 or 3, got {slot}")


# ---------------------------------------------------------------------------
# Related-product grouping (discriminated union)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StandaloneEntry:
    """A line that is not part of any related-product bundle."""

    line: DocumentLine
    kind: Literal["standalone"] = "standalone"

    @property
    def lines(self) -> tuple[DocumentLine, ...]:
        return (self.line,)


@dataclass(frozen=True)
class GroupEntry:
    """A main line plus the related lines that were added with it.

    ``main.related_lines`` mirrors ``related`` so callers that only see the
    main line (list rows, edit dialogs) still reach the bundle.
    """

    key: str
    main: DocumentLine
    related: tuple[DocumentLine, ...] = ()
    kind: Literal["group"] = "group"

    @property
    def lines(self) -> tuple[DocumentLine, ...]:
        return (self.main, *self.related)


LineEntry = StandaloneEntry | GroupEntry


# ---------------------------------------------------------------------------
# Exchange rates and currency reference data
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CurrencyOption:
    """Reference entry linking a currency code to its numeric rate type."""

    code: str
    rate_type: int
    name: str | None = None


@dataclass(frozen=True)
class OfficialRate:
    """System-wide (ERP) exchange rate for one currency type."""

    rate_type: int
    rate: Decimal
    name: str | None = None
    rate_date: date | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.rate, Decimal):
            object.__setattr__(self, "rate", to_decimal(self.rate))

    def matches(self, currency: str) -> bool:
        return str(self.rate_type) == currency or (
            self.name is not None and self.name == currency
        )


@dataclass(frozen=True)
class ExchangeRateOverride:
    """Per-document exchange-rate row.

    ``is_official`` stays True until the user edits the value; from then on
    the row is a document-local override.
    """

    local_id: str
    currency: str
    exchange_rate: Decimal
    exchange_rate_date: date | None = None
    is_official: bool = True
    rate_type: int | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.exchange_rate, Decimal):
            object.__setattr__(
                self, "exchange_rate", to_decimal(self.exchange_rate)
            )

    @property
    def server_id(self) -> int | None:
        return parse_rate_id(self.local_id)


# ---------------------------------------------------------------------------
# Header
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentHeader:
    """Header fields shared by demands, orders and quotations.

    ``status`` is the document approval status code (0-3).
    """

    currency: str
    offer_type: str = "Domestic"
    status: int | None = None
    potential_customer_id: int | None = None
    erp_customer_code: str | None = None
    delivery_date: date | None = None
    shipping_address_id: int | None = None
    representative_id: int | None = None
    description: str | None = None
    payment_type_id: int | None = None
    document_serial_type_id: int | None = None
    offer_date: date | None = None
    offer_no: str | None = None
    revision_no: str | None = None
    revision_id: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Totals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DocumentTotals:
    """Sum of line totals across a document."""

    subtotal: Decimal = ZERO
    total_vat: Decimal = ZERO
    grand_total: Decimal = ZERO
