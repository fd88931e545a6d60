"""
sales_services.collaborators -- Remote services the document session uses.

Responsibility:
    Structural protocols for the document, pricing and discount-limit
    services.  Records cross these boundaries as camelCase dicts; the
    ``sales_mapping`` package converts them.

Architecture position:
    Services layer.  Implementations live outside this package (HTTP
    clients, test fakes).  Errors raised by implementations propagate to
    the caller unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping, Protocol, Sequence, runtime_checkable

Record = Mapping[str, Any]


@runtime_checkable
class DocumentService(Protocol):
    """Remote service that stores one kind of sales document."""

    def get_detail(self, document_id: int) -> Record:
        """Header record of the document."""
        ...

    def get_lines(self, document_id: int) -> Sequence[Record]:
        ...

    def get_exchange_rates(self, document_id: int) -> Sequence[Record]:
        ...

    def bulk_create(self, request: Record) -> Record:
        """Create a document with lines and rates; returns the new header."""
        ...

    def create_lines(self, document_id: int, lines: Sequence[Record]) -> Any:
        ...

    def update_lines(self, document_id: int, lines: Sequence[Record]) -> Any:
        ...

    def delete_line(self, line_id: int) -> Any:
        ...

    def update_exchange_rates(self, document_id: int, rates: Sequence[Record]) -> Any:
        ...

    def get_approval_flow_report(self, document_id: int) -> Record:
        ...

    def get_waiting_approvals(self) -> Sequence[Record]:
        """Approval actions waiting on the signed-in user."""
        ...

    def start_approval_flow(self, payload: Record) -> Any:
        ...

    def approve(self, payload: Record) -> Any:
        ...

    def reject(self, payload: Record) -> Any:
        ...


@runtime_checkable
class PricingService(Protocol):
    """Product, price-list and exchange-rate lookups."""

    def get_stock(self, stock_id: int) -> Record:
        """Stock record including ``parentRelations``."""
        ...

    def get_prices(self, products: Sequence[Record]) -> Sequence[Record]:
        """List prices for ``{productCode, groupCode}`` requests, in order."""
        ...

    def get_pricing_rules(
        self,
        customer_code: str | None,
        salesperson_id: int | None,
        currency: str | None,
    ) -> Sequence[Record]:
        ...

    def get_official_rates(self) -> Sequence[Record]:
        ...

    def get_currency_options(self) -> Sequence[Record]:
        ...


@runtime_checkable
class DiscountLimitService(Protocol):
    """Salesperson discount limits per product group."""

    def get_discount_limits(self, salesperson_id: int) -> Sequence[Record]:
        ...
