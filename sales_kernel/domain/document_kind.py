"""
Document kinds (``sales_kernel.domain.document_kind``).

Demands, orders and quotations run through the same engine.  They differ
only in wire field names, which are captured here as one frozen capability
record per kind instead of three copies of the engine.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sales_kernel.exceptions import UnknownDocumentKindError


@dataclass(frozen=True)
class DocumentKind:
    """Wire-level capability set of one document kind.

    Attributes:
        name: Kind identifier (``demand``, ``order``, ``quotation``).
        parent_id_field: Field naming the parent document on line and
            exchange-rate DTOs (``quotationId``).
        header_key: Key of the header object in bulk payloads.
        offer_no_field: Offer number field on exchange-rate update DTOs.
        query_key: Cache/query namespace used by callers.
        update_line_extra_fields: Extra fields, with their values, that the
            kind's line update DTO carries.
    """

    name: str
    parent_id_field: str
    header_key: str
    offer_no_field: str
    query_key: str
    update_line_extra_fields: tuple[tuple[str, Any], ...] = field(default=())


DEMAND = DocumentKind(
    name="demand",
    parent_id_field="demandId",
    header_key="demand",
    offer_no_field="demandOfferNo",
    query_key="demands",
)

ORDER = DocumentKind(
    name="order",
    parent_id_field="orderId",
    header_key="order",
    offer_no_field="orderOfferNo",
    query_key="orders",
    update_line_extra_fields=(("createdAt", None),),
)

QUOTATION = DocumentKind(
    name="quotation",
    parent_id_field="quotationId",
    header_key="quotation",
    offer_no_field="quotationOfferNo",
    query_key="quotations",
)

DOCUMENT_KINDS: dict[str, DocumentKind] = {
    kind.name: kind for kind in (DEMAND, ORDER, QUOTATION)
}


def get_document_kind(name: str) -> DocumentKind:
    """Look up a document kind by name.

    Raises:
        UnknownDocumentKindError: if ``name`` is not registered.
    """
    try:
        return DOCUMENT_KINDS[name.strip().lower()]
    except KeyError:
        raise UnknownDocumentKindError(name) from None
