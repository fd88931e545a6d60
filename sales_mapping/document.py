"""
Document mapping: pure transformation between server records and the
editable document model.

Server records are camelCase dicts as the document service returns them.
Outgoing DTOs are camelCase dicts with floats for numbers.  Money amounts
and discount rates are rounded to the places of ``EngineSettings``
(2 and 6 by default); quantities, unit prices and VAT rates go out as
entered.  ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Iterable, Mapping, Sequence

from sales_config.schema import EngineSettings
from sales_kernel.domain.document import (
    STANDALONE_GROUP_PREFIX,
    DocumentHeader,
    DocumentLine,
    ExchangeRateOverride,
    ProductRef,
    existing_line_id,
    parse_line_id,
    to_decimal,
)
from sales_kernel.domain.document_kind import DocumentKind
from sales_kernel.logging_config import get_logger
from sales_mapping.exchange_rates import rates_to_create_dtos
from sales_mapping.values import (
    format_date,
    parse_date,
    to_wire_money,
    to_wire_number,
    to_wire_rate,
)

logger = get_logger("mapping.document")

_MONEY_FIELDS = (
    ("discountAmount1", "discount_amount1"),
    ("discountAmount2", "discount_amount2"),
    ("discountAmount3", "discount_amount3"),
    ("vatAmount", "vat_amount"),
    ("lineTotal", "line_total"),
    ("lineGrandTotal", "line_grand_total"),
)

_PLAIN_NUMBER_FIELDS = (
    ("quantity", "quantity"),
    ("unitPrice", "unit_price"),
    ("vatRate", "vat_rate"),
)

_RATE_FIELDS = (
    ("discountRate1", "discount_rate1"),
    ("discountRate2", "discount_rate2"),
    ("discountRate3", "discount_rate3"),
)

_DEFAULT_SETTINGS = EngineSettings()


# -----------------------------------------------------------------------------
# Lines
# -----------------------------------------------------------------------------


def line_from_detail(record: Mapping[str, Any]) -> DocumentLine:
    """Build a persisted line from a server line record.

    Totals are kept exactly as the server reported them.
    """
    product = None
    if record.get("productCode") or record.get("productName"):
        product = ProductRef(
            product_id=record.get("productId"),
            product_code=record.get("productCode") or "",
            product_name=record.get("productName") or "",
            group_code=record.get("groupCode"),
        )
    fields: dict[str, Any] = {}
    for wire, attr in _PLAIN_NUMBER_FIELDS + _RATE_FIELDS + _MONEY_FIELDS:
        fields[attr] = to_decimal(record.get(wire))
    return DocumentLine(
        local_id=existing_line_id(record["id"]),
        product=product,
        description=record.get("description"),
        pricing_rule_header_id=record.get("pricingRuleHeaderId"),
        related_stock_id=record.get("relatedStockId"),
        related_product_key=(record.get("relatedProductKey") or "").strip() or None,
        is_main_related_product=bool(record.get("isMainRelatedProduct")),
        approval_status=int(record.get("approvalStatus") or 0),
        **fields,
    )


def to_form_state(detail_lines: Iterable[Mapping[str, Any]]) -> tuple[DocumentLine, ...]:
    """Turn server line records into the flat, main-first editing list.

    Lines are grouped by trimmed ``relatedProductKey`` (``standalone-<id>``
    when blank).  Each group lists its main line first, then the rest by
    id; the related lines are also nested under the main line.  Groups are
    ordered by the id of their main line.

    A bundle carries exactly one main flag afterwards: the first
    main-flagged record by id, else the lowest id.
    """
    buckets: dict[str, list[Mapping[str, Any]]] = {}
    for record in detail_lines:
        key = (record.get("relatedProductKey") or "").strip()
        if not key:
            key = f"{STANDALONE_GROUP_PREFIX}{record['id']}"
        buckets.setdefault(key, []).append(record)

    groups: list[tuple[int, list[DocumentLine]]] = []
    for key, records in buckets.items():
        ordered = sorted(
            records,
            key=lambda r: (not r.get("isMainRelatedProduct"), r["id"]),
        )
        main = line_from_detail(ordered[0])
        if key.startswith(STANDALONE_GROUP_PREFIX):
            groups.append((ordered[0]["id"], [main]))
            continue
        related = tuple(
            replace(line_from_detail(r), is_main_related_product=False)
            for r in ordered[1:]
        )
        main = replace(main, is_main_related_product=True, related_lines=related)
        groups.append((ordered[0]["id"], [main, *related]))

    groups.sort(key=lambda g: g[0])
    return tuple(line for _, lines in groups for line in lines)


def _line_body(line: DocumentLine, settings: EngineSettings) -> dict[str, Any]:
    product = line.product
    body: dict[str, Any] = {
        "productId": product.product_id if product else None,
        "productCode": product.product_code if product else "",
        "productName": product.product_name if product else "",
        "groupCode": product.group_code if product else None,
    }
    for wire, attr in _PLAIN_NUMBER_FIELDS:
        body[wire] = to_wire_number(getattr(line, attr))
    for wire, attr in _RATE_FIELDS:
        body[wire] = to_wire_rate(
            getattr(line, attr), settings.rate_places, settings.rounding
        )
    for wire, attr in _MONEY_FIELDS:
        body[wire] = to_wire_money(
            getattr(line, attr), settings.money_places, settings.rounding
        )
    body.update(
        {
            "description": line.description,
            "pricingRuleHeaderId": line.pricing_rule_header_id,
            "relatedStockId": line.related_stock_id,
            "relatedProductKey": line.related_product_key,
            "isMainRelatedProduct": line.is_main_related_product,
            "approvalStatus": int(line.approval_status),
        }
    )
    return body


def to_create_dto(
    line: DocumentLine,
    document_id: int,
    kind: DocumentKind,
    settings: EngineSettings | None = None,
) -> dict[str, Any]:
    """Create DTO of a line; UI-only fields are dropped."""
    body = _line_body(line, settings or _DEFAULT_SETTINGS)
    return {kind.parent_id_field: document_id, **body}


def to_update_dto(
    line: DocumentLine,
    document_id: int,
    kind: DocumentKind,
    settings: EngineSettings | None = None,
) -> dict[str, Any] | None:
    """Update DTO of a persisted line, or None for a never-persisted one."""
    server_id = parse_line_id(line.local_id)
    if server_id is None:
        return None
    body = _line_body(line, settings or _DEFAULT_SETTINGS)
    dto = {"id": server_id, kind.parent_id_field: document_id, **body}
    dto.update(dict(kind.update_line_extra_fields))
    return dto


@dataclass(frozen=True)
class LineSyncPlan:
    """Lines to create and lines to update for one save."""

    creates: tuple[dict[str, Any], ...] = ()
    updates: tuple[dict[str, Any], ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.creates and not self.updates


def plan_line_sync(
    lines: Iterable[DocumentLine],
    document_id: int,
    kind: DocumentKind,
    settings: EngineSettings | None = None,
) -> LineSyncPlan:
    """Route each line to a create or an update DTO."""
    creates: list[dict[str, Any]] = []
    updates: list[dict[str, Any]] = []
    for line in lines:
        dto = to_update_dto(line, document_id, kind, settings)
        if dto is None:
            creates.append(to_create_dto(line, document_id, kind, settings))
        else:
            updates.append(dto)
    logger.debug(
        "line_sync_planned",
        extra={"creates": len(creates), "updates": len(updates)},
    )
    return LineSyncPlan(creates=tuple(creates), updates=tuple(updates))


# -----------------------------------------------------------------------------
# Header and bulk create
# -----------------------------------------------------------------------------

_HEADER_FIELDS = (
    ("potentialCustomerId", "potential_customer_id"),
    ("erpCustomerCode", "erp_customer_code"),
    ("shippingAddressId", "shipping_address_id"),
    ("representativeId", "representative_id"),
    ("status", "status"),
    ("description", "description"),
    ("paymentTypeId", "payment_type_id"),
    ("documentSerialTypeId", "document_serial_type_id"),
    ("offerNo", "offer_no"),
    ("revisionNo", "revision_no"),
    ("revisionId", "revision_id"),
)
_HEADER_DATE_FIELDS = (
    ("deliveryDate", "delivery_date"),
    ("offerDate", "offer_date"),
)


def header_from_detail(
    record: Mapping[str, Any], extra_fields: Sequence[str] = ()
) -> DocumentHeader:
    """Editable header from a server document record.

    ``extra_fields`` names kind-specific keys copied verbatim into
    ``DocumentHeader.extra``.
    """
    kwargs: dict[str, Any] = {attr: record.get(wire) for wire, attr in _HEADER_FIELDS}
    for wire, attr in _HEADER_DATE_FIELDS:
        kwargs[attr] = parse_date(record.get(wire))
    return DocumentHeader(
        currency=record.get("currency") or "",
        offer_type=record.get("offerType") or "Domestic",
        extra={name: record.get(name) for name in extra_fields if name in record},
        **kwargs,
    )


def header_to_payload(header: DocumentHeader) -> dict[str, Any]:
    payload: dict[str, Any] = {wire: getattr(header, attr) for wire, attr in _HEADER_FIELDS}
    for wire, attr in _HEADER_DATE_FIELDS:
        payload[wire] = format_date(getattr(header, attr))
    payload["offerType"] = header.offer_type
    payload["currency"] = header.currency
    payload.update(header.extra)
    return payload


def to_bulk_create_request(
    header: DocumentHeader,
    lines: Iterable[DocumentLine],
    rates: Sequence[ExchangeRateOverride],
    kind: DocumentKind,
    settings: EngineSettings | None = None,
) -> dict[str, Any]:
    """Payload creating a document with its lines and rates in one call.

    Lines and rates carry parent id 0; the server assigns the real one.
    """
    request: dict[str, Any] = {
        kind.header_key: header_to_payload(header),
        "lines": [to_create_dto(line, 0, kind, settings) for line in lines],
    }
    if rates:
        request["exchangeRates"] = rates_to_create_dtos(rates, 0, kind)
    return request
