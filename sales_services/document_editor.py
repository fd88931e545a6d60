"""
sales_services.document_editor -- Reducer over the document editing state.

Responsibility:
    Hold everything a document editor needs (header, lines, rate rows,
    reference data) in one immutable ``EditingState`` and apply user
    intents to it through ``reduce(state, intent)``.  Every line an intent
    touches runs through the same pipeline: totals, then bundle
    regrouping, then the discount-limit check.

Architecture position:
    Services layer, zero I/O.  Delegates all arithmetic to sales_engines.

Invariants enforced:
    - ``reduce`` never mutates its input; it returns a new state.
    - Read-only documents (approved or rejected) reject every editing
      intent with ``DocumentReadonlyError``.
    - Deleting a persisted line records its server id in
      ``deleted_line_ids`` so the next save removes it remotely.
    - Related-line quantities follow their main line and cannot be set.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Union

from sales_config.schema import EngineSettings
from sales_engines.approval_workflow import document_requires_approval, is_readonly
from sales_engines.discount_limits import apply_discount_limits
from sales_engines.exchange_rates import edit_override, reprice_for_currency_change
from sales_engines.line_calculator import (
    calculate_document_totals,
    clamp_discount_rate,
    compute_line_totals,
    set_discount_amount,
    set_discount_rate,
    update_line,
)
from sales_engines.pricing_rules import apply_pricing_rule
from sales_engines.related_products import (
    add_lines,
    apply_main_quantity_change,
    delete_line,
    flatten,
    group_lines,
    save_edited_line,
    visible_lines,
)
from sales_kernel.domain.document import (
    CurrencyOption,
    DocumentHeader,
    DocumentLine,
    DocumentTotals,
    ExchangeRateOverride,
    GroupEntry,
    OfficialRate,
    to_decimal,
)
from sales_kernel.domain.document_kind import DocumentKind
from sales_kernel.domain.pricing import DiscountLimit, PricingRuleLine
from sales_kernel.exceptions import (
    DocumentReadonlyError,
    LineNotFoundError,
    RelatedQuantityEditError,
)
from sales_kernel.logging_config import get_logger

logger = get_logger("services.document_editor")


@dataclass(frozen=True)
class EditingState:
    """Immutable snapshot of a document being edited."""

    kind: DocumentKind
    header: DocumentHeader
    document_id: int | None = None
    lines: tuple[DocumentLine, ...] = ()
    rates: tuple[ExchangeRateOverride, ...] = ()
    official_rates: tuple[OfficialRate, ...] = ()
    currency_options: tuple[CurrencyOption, ...] = ()
    discount_limits: tuple[DiscountLimit, ...] = ()
    pricing_rules: tuple[PricingRuleLine, ...] = ()
    deleted_line_ids: tuple[int, ...] = ()
    settings: EngineSettings = field(default_factory=EngineSettings)

    @property
    def is_new(self) -> bool:
        return self.document_id is None

    @property
    def is_readonly(self) -> bool:
        return is_readonly(self.header.status)

    @property
    def has_lines(self) -> bool:
        return bool(self.lines)

    @property
    def totals(self) -> DocumentTotals:
        return calculate_document_totals(self.lines)

    @property
    def visible_lines(self) -> tuple[DocumentLine, ...]:
        return visible_lines(self.lines)

    @property
    def requires_approval(self) -> bool:
        return document_requires_approval(self.lines)

    def find_line(self, local_id: str) -> DocumentLine:
        for line in self.lines:
            if line.local_id == local_id:
                return line
        raise LineNotFoundError(local_id)


# -----------------------------------------------------------------------------
# Intents
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class AddLine:
    """Append a new line (and its nested related lines)."""

    line: DocumentLine


@dataclass(frozen=True)
class SaveLine:
    """Replace ``original_id`` with the line the edit dialog produced."""

    original_id: str
    line: DocumentLine


@dataclass(frozen=True)
class SetQuantity:
    local_id: str
    quantity: Decimal | int | str


@dataclass(frozen=True)
class SetUnitPrice:
    local_id: str
    unit_price: Decimal | int | str


@dataclass(frozen=True)
class SetVatRate:
    local_id: str
    vat_rate: Decimal | int | str


@dataclass(frozen=True)
class SetDiscountRate:
    local_id: str
    slot: int
    rate: Decimal | int | str | None


@dataclass(frozen=True)
class SetDiscountAmount:
    local_id: str
    slot: int
    amount: Decimal | int | str


@dataclass(frozen=True)
class DeleteLine:
    local_id: str


@dataclass(frozen=True)
class ChangeCurrency:
    """Switch the document currency and re-price every line."""

    currency: str


@dataclass(frozen=True)
class EditExchangeRate:
    currency: str
    exchange_rate: Decimal | int | str


@dataclass(frozen=True)
class SetDiscountLimits:
    limits: tuple[DiscountLimit, ...]


@dataclass(frozen=True)
class SetPricingRules:
    rules: tuple[PricingRuleLine, ...]


Intent = Union[
    AddLine,
    SaveLine,
    SetQuantity,
    SetUnitPrice,
    SetVatRate,
    SetDiscountRate,
    SetDiscountAmount,
    DeleteLine,
    ChangeCurrency,
    EditExchangeRate,
    SetDiscountLimits,
    SetPricingRules,
]

# Reference-data intents are accepted on read-only documents.
_READONLY_SAFE = (SetDiscountLimits, SetPricingRules)


def reduce(state: EditingState, intent: Intent) -> EditingState:
    """Apply one intent and return the next state.

    Raises:
        DocumentReadonlyError: for editing intents on a read-only document.
        LineNotFoundError: if the intent names an unknown line.
        RelatedQuantityEditError: when an intent changes the quantity of a
            bundle's related line.
        ExchangeRateInUseError: when editing the active currency's rate
            while the document has lines.
    """
    if state.is_readonly and not isinstance(intent, _READONLY_SAFE):
        raise DocumentReadonlyError(state.document_id, int(state.header.status))
    next_state = _apply(intent, state)
    logger.debug(
        "editing_intent_applied",
        extra={"intent": type(intent).__name__, "line_count": len(next_state.lines)},
    )
    return next_state


def _finish(state: EditingState, lines: tuple[DocumentLine, ...]) -> EditingState:
    """Regroup bundles and re-run the discount-limit check."""
    limited = tuple(apply_discount_limits(line, state.discount_limits) for line in lines)
    return replace(state, lines=flatten(group_lines(limited)))


def _replace_line(
    state: EditingState, local_id: str, line: DocumentLine
) -> EditingState:
    return _finish(
        state, tuple(line if l.local_id == local_id else l for l in state.lines)
    )


def _apply(intent: Intent, state: EditingState) -> EditingState:
    match intent:
        case AddLine():
            return _add_line(state, intent)
        case SaveLine():
            return _save_line(state, intent)
        case SetQuantity():
            return _set_quantity(state, intent)
        case SetUnitPrice():
            line = state.find_line(intent.local_id)
            updated = update_line(line, unit_price=to_decimal(intent.unit_price))
            return _replace_line(state, line.local_id, updated)
        case SetVatRate():
            line = state.find_line(intent.local_id)
            updated = update_line(line, vat_rate=to_decimal(intent.vat_rate))
            return _replace_line(state, line.local_id, updated)
        case SetDiscountRate():
            line = state.find_line(intent.local_id)
            rate = clamp_discount_rate(
                intent.rate,
                state.settings.discount_rate_min,
                state.settings.discount_rate_max,
            )
            updated = set_discount_rate(line, intent.slot, rate)
            return _replace_line(state, line.local_id, updated)
        case SetDiscountAmount():
            line = state.find_line(intent.local_id)
            updated = set_discount_amount(line, intent.slot, intent.amount)
            return _replace_line(state, line.local_id, updated)
        case DeleteLine():
            return _delete_line(state, intent)
        case ChangeCurrency():
            return _change_currency(state, intent)
        case EditExchangeRate():
            rates = edit_override(
                state.rates,
                intent.currency,
                intent.exchange_rate,
                active_currency=state.header.currency,
                has_lines=state.has_lines,
            )
            return replace(state, rates=rates)
        case SetDiscountLimits():
            state = replace(state, discount_limits=tuple(intent.limits))
            if state.is_readonly:
                return state
            return _finish(state, state.lines)
        case SetPricingRules():
            return replace(state, pricing_rules=tuple(intent.rules))
        case _:
            raise TypeError(f"Unknown editing intent: {type(intent).__name__}")


def _add_line(state: EditingState, intent: AddLine) -> EditingState:
    line = compute_line_totals(intent.line)
    return _finish(state, add_lines(state.lines, line))


def _save_line(state: EditingState, intent: SaveLine) -> EditingState:
    original = state.find_line(intent.original_id)
    lines = save_edited_line(
        state.lines,
        original,
        intent.line,
        quantity_places=state.settings.quantity_places,
    )
    return _finish(state, lines)


def _set_quantity(state: EditingState, intent: SetQuantity) -> EditingState:
    line = state.find_line(intent.local_id)
    if line.is_grouped and not line.is_main_related_product:
        raise RelatedQuantityEditError(line.local_id, line.related_product_key)
    quantity = to_decimal(intent.quantity)
    if not line.is_grouped:
        updated = apply_pricing_rule(
            update_line(line, quantity=quantity), state.pricing_rules
        )
        return _replace_line(state, line.local_id, updated)

    entry = next(
        (
            e
            for e in group_lines(state.lines)
            if isinstance(e, GroupEntry) and e.main.local_id == line.local_id
        ),
        None,
    )
    if entry is None:
        raise LineNotFoundError(line.local_id)
    scaled = apply_main_quantity_change(
        entry, quantity, quantity_places=state.settings.quantity_places
    )
    main = apply_pricing_rule(scaled.main, state.pricing_rules)
    by_id = {l.local_id: l for l in (main, *scaled.related)}
    return _finish(state, tuple(by_id.get(l.local_id, l) for l in state.lines))


def _delete_line(state: EditingState, intent: DeleteLine) -> EditingState:
    remaining, removed = delete_line(state.lines, intent.local_id)
    deleted = list(state.deleted_line_ids)
    for line in removed:
        if line.server_id is not None and line.server_id not in deleted:
            deleted.append(line.server_id)
    return replace(_finish(state, remaining), deleted_line_ids=tuple(deleted))


def _change_currency(state: EditingState, intent: ChangeCurrency) -> EditingState:
    old = state.header.currency
    if intent.currency == old:
        return state
    lines = reprice_for_currency_change(
        state.lines, old, intent.currency, state.rates, state.official_rates
    )
    state = replace(state, header=replace(state.header, currency=intent.currency))
    return _finish(state, lines)
