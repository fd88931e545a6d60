"""
sales_services.document_session -- Document load/save/approval coordinator.

Responsibility:
    Fetch a document and its reference data from the remote collaborators,
    hand the editing state to the reducer, and send the resulting payloads
    back: bulk create for new documents, line create/update/delete plus
    rate updates for existing ones, and the approval actions.

Architecture position:
    Services layer.  Thin coordinator: arithmetic lives in sales_engines,
    wire shapes in sales_mapping, state transitions in
    sales_services.document_editor.

Invariants enforced:
    - Collaborator calls are sequential; their errors propagate unchanged.
    - The prices of a product and all its related stocks are fetched in a
      single call before any line totals are computed.
    - Approval actions are validated locally against the flow report
      before the remote call is made.
"""

from __future__ import annotations

import time
from dataclasses import replace
from decimal import Decimal
from typing import Sequence

from sales_config import get_engine_settings
from sales_config.schema import EngineSettings
from sales_engines.approval_workflow import (
    approve as approve_request,
    available_actions,
    reject as reject_request,
    start_approval as start_approval_status,
)
from sales_engines.exchange_rates import convert_price
from sales_engines.pricing_rules import apply_product_price
from sales_engines.related_products import build_related_group
from sales_kernel.domain.approval import ApprovalRequest, WorkflowAction
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.document import (
    DocumentHeader,
    DocumentLine,
    new_line_id,
)
from sales_kernel.domain.document_kind import DocumentKind
from sales_kernel.domain.pricing import ProductPrice
from sales_kernel.exceptions import ApprovalRequestNotFoundError
from sales_kernel.logging_config import LogContext, get_logger
from sales_mapping.approval import (
    approval_request_from_report,
    approve_payload,
    reject_payload,
    start_approval_payload,
    waiting_approvals_from_records,
)
from sales_mapping.document import (
    header_from_detail,
    plan_line_sync,
    to_bulk_create_request,
    to_form_state,
)
from sales_mapping.exchange_rates import (
    currency_options_from_records,
    official_rates_from_records,
    rates_from_detail,
    rates_from_official,
    rates_to_update_dtos,
)
from sales_mapping.pricing import (
    discount_limits_from_records,
    pricing_rules_from_records,
    product_price_from_record,
    stock_from_record,
)
from sales_services.collaborators import (
    DiscountLimitService,
    DocumentService,
    PricingService,
)
from sales_services.document_editor import (
    AddLine,
    EditingState,
    SetDiscountLimits,
    SetPricingRules,
    reduce,
)

logger = get_logger("services.document_session")


class DocumentSession:
    """Coordinates one document kind against its remote services."""

    def __init__(
        self,
        kind: DocumentKind,
        documents: DocumentService,
        pricing: PricingService,
        discount_limits: DiscountLimitService | None = None,
        settings: EngineSettings | None = None,
        clock: Clock | None = None,
        user_id: int | None = None,
    ) -> None:
        self._kind = kind
        self._documents = documents
        self._pricing = pricing
        self._discount_limits = discount_limits
        self._settings = settings or get_engine_settings()
        self._clock = clock or SystemClock()
        self._user_id = user_id

    @property
    def kind(self) -> DocumentKind:
        return self._kind

    # -- loading ------------------------------------------------------------

    def new_document(self, header: DocumentHeader) -> EditingState:
        """Editing state for a document that does not exist yet.

        Rate rows start as copies of today's official rates.
        """
        official = official_rates_from_records(self._pricing.get_official_rates())
        options = currency_options_from_records(self._pricing.get_currency_options())
        return EditingState(
            kind=self._kind,
            header=header,
            rates=rates_from_official(official, self._clock.now().date()),
            official_rates=official,
            currency_options=options,
            settings=self._settings,
        )

    def load(self, document_id: int) -> EditingState:
        """Editing state of an existing document.

        Server line totals are kept as reported.
        """
        with LogContext.bind(document_id=document_id, document_kind=self._kind.name):
            t0 = time.monotonic()
            detail = self._documents.get_detail(document_id)
            line_records = self._documents.get_lines(document_id)
            rate_records = self._documents.get_exchange_rates(document_id)
            official = official_rates_from_records(self._pricing.get_official_rates())
            options = currency_options_from_records(
                self._pricing.get_currency_options()
            )
            state = EditingState(
                kind=self._kind,
                header=header_from_detail(detail),
                document_id=document_id,
                lines=to_form_state(line_records),
                rates=rates_from_detail(rate_records, options),
                official_rates=official,
                currency_options=options,
                settings=self._settings,
            )
            logger.info(
                "document_loaded",
                extra={
                    "line_count": len(state.lines),
                    "rate_count": len(state.rates),
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
            return state

    def load_discount_limits(
        self, state: EditingState, salesperson_id: int
    ) -> EditingState:
        """Fetch the salesperson's limits and re-check every line."""
        if self._discount_limits is None:
            return state
        records = self._discount_limits.get_discount_limits(salesperson_id)
        return reduce(state, SetDiscountLimits(discount_limits_from_records(records)))

    def load_pricing_rules(
        self,
        state: EditingState,
        customer_code: str | None,
        salesperson_id: int | None,
    ) -> EditingState:
        records = self._pricing.get_pricing_rules(
            customer_code, salesperson_id, state.header.currency
        )
        return reduce(state, SetPricingRules(pricing_rules_from_records(records)))

    # -- adding products ----------------------------------------------------

    def add_product(
        self,
        state: EditingState,
        stock_id: int,
        related_stock_ids: Sequence[int] | None = None,
        quantity: int = 1,
    ) -> EditingState:
        """Add a stock as a new line, bundled with its related stocks.

        One price request covers the main stock and every related stock.
        """
        stock = stock_from_record(self._pricing.get_stock(stock_id), related_stock_ids)
        requests = [stock.price_request()]
        requests.extend(
            {"productCode": rel.related_stock_code, "groupCode": rel.group_code or ""}
            for rel in stock.relations
        )
        prices = [product_price_from_record(r) for r in self._pricing.get_prices(requests)]
        main_price = prices[0] if prices else None

        main = DocumentLine(
            local_id=new_line_id(),
            product=stock.product,
            quantity=quantity,
            vat_rate=self._settings.default_vat_rate,
            related_stock_id=stock.stock_id,
        )
        main = self._price_line(state, main, main_price)

        if stock.relations:
            related_prices = []
            related_discounts = []
            for idx in range(len(stock.relations)):
                price = prices[idx + 1] if idx + 1 < len(prices) else None
                related_prices.append(self._converted_price(state, price))
                related_discounts.append(price.discounts if price else ())
            main = build_related_group(
                main,
                stock.relations,
                related_prices=related_prices,
                related_discounts=related_discounts,
                vat_rate=self._settings.default_vat_rate,
            ).main

        logger.info(
            "product_added",
            extra={
                "stock_id": stock.stock_id,
                "related_count": len(stock.relations),
            },
        )
        return reduce(state, AddLine(main))

    def _price_line(
        self, state: EditingState, line: DocumentLine, price: ProductPrice | None
    ) -> DocumentLine:
        return apply_product_price(
            line,
            price,
            state.header.currency,
            state.rates,
            state.official_rates,
            state.pricing_rules,
        )

    def _converted_price(
        self, state: EditingState, price: ProductPrice | None
    ) -> Decimal | None:
        if price is None:
            return None
        return convert_price(
            price.list_price,
            price.currency,
            state.header.currency,
            state.rates,
            state.official_rates,
        )

    # -- saving -------------------------------------------------------------

    def save(self, state: EditingState) -> EditingState:
        """Persist the editing state and reload it from the server.

        New documents go out as one bulk create.  Existing documents delete
        removed lines, then create/update lines, then update rate rows.
        """
        if state.is_new:
            request = to_bulk_create_request(
                state.header, state.lines, state.rates, self._kind, self._settings
            )
            created = self._documents.bulk_create(request)
            document_id = int(created["id"])
            logger.info(
                "document_created",
                extra={"document_id": document_id, "line_count": len(state.lines)},
            )
            return self.load(document_id)

        document_id = state.document_id
        with LogContext.bind(document_id=document_id, document_kind=self._kind.name):
            for line_id in state.deleted_line_ids:
                self._documents.delete_line(line_id)
            plan = plan_line_sync(state.lines, document_id, self._kind, self._settings)
            if plan.creates:
                self._documents.create_lines(document_id, list(plan.creates))
            if plan.updates:
                self._documents.update_lines(document_id, list(plan.updates))
            if state.rates:
                self._documents.update_exchange_rates(
                    document_id,
                    rates_to_update_dtos(
                        state.rates, document_id, state.header.offer_no, self._kind
                    ),
                )
            logger.info(
                "document_saved",
                extra={
                    "deleted": len(state.deleted_line_ids),
                    "created": len(plan.creates),
                    "updated": len(plan.updates),
                },
            )
        return self.load(document_id)

    # -- approval -----------------------------------------------------------

    def approval_request(self, document_id: int) -> ApprovalRequest:
        """Current approval request of a document.

        Raises:
            ApprovalRequestNotFoundError: if no approval flow was started.
        """
        report = self._documents.get_approval_flow_report(document_id)
        waiting = waiting_approvals_from_records(self._documents.get_waiting_approvals())
        return approval_request_from_report(report, self._kind, waiting)

    def available_actions(self, state: EditingState) -> frozenset[WorkflowAction]:
        request = None
        if state.document_id is not None and state.header.status:
            try:
                request = self.approval_request(state.document_id)
            except ApprovalRequestNotFoundError:
                request = None
        return available_actions(state.header.status, request, self._user_id or 0)

    def start_approval(self, state: EditingState) -> EditingState:
        """Start the approval flow of a saved document.

        Raises:
            InvalidApprovalTransitionError: unless the document is NotStarted.
        """
        status = start_approval_status(state.header.status)
        with LogContext.bind(
            document_id=state.document_id, actor_id=self._user_id
        ):
            self._documents.start_approval_flow(start_approval_payload(state.document_id))
            logger.info("approval_flow_started")
        return replace(state, header=replace(state.header, status=int(status)))

    def approve(self, state: EditingState, action_id: int) -> ApprovalRequest:
        """Approve the user's pending action on the document.

        Raises:
            ApprovalActionNotAllowedError: if the user has no such pending
                action in the active step.
        """
        request = self.approval_request(state.document_id)
        updated = approve_request(
            request, action_id, self._user_id or 0, at=self._clock.now()
        )
        with LogContext.bind(document_id=state.document_id, actor_id=self._user_id):
            self._documents.approve(approve_payload(action_id))
            logger.info("approval_sent", extra={"action_id": action_id})
        return updated

    def reject(
        self, state: EditingState, action_id: int, reason: str | None = None
    ) -> ApprovalRequest:
        """Reject the user's pending action; the reason is sent verbatim."""
        request = self.approval_request(state.document_id)
        updated = reject_request(
            request, action_id, self._user_id or 0, reason=reason, at=self._clock.now()
        )
        with LogContext.bind(document_id=state.document_id, actor_id=self._user_id):
            self._documents.reject(reject_payload(action_id, reason))
            logger.info("rejection_sent", extra={"action_id": action_id})
        return updated
