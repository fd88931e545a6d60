"""
Pure domain layer.

This module contains value objects for sales documents with NO
dependencies on:
- Network clients
- Persistence
- Time/clock (except the injectable Clock)
- I/O

All domain objects are immutable and deterministic.
"""

from sales_kernel.domain.approval import (
    APPROVAL_TRANSITIONS,
    TERMINAL_APPROVAL_STATUSES,
    ActionStatus,
    ApprovalAction,
    ApprovalRequest,
    ApprovalStep,
    DocumentApprovalStatus,
    StepStatus,
    WorkflowAction,
)
from sales_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from sales_kernel.domain.document import (
    CurrencyOption,
    DiscountBasis,
    DocumentHeader,
    DocumentLine,
    DocumentTotals,
    ExchangeRateOverride,
    GroupEntry,
    LineApprovalStatus,
    LineEntry,
    OfficialRate,
    ProductRef,
    StandaloneEntry,
    existing_line_id,
    main_group_key,
    new_line_id,
    parse_line_id,
    to_decimal,
)
from sales_kernel.domain.document_kind import (
    DEMAND,
    DOCUMENT_KINDS,
    ORDER,
    QUOTATION,
    DocumentKind,
    get_document_kind,
)
from sales_kernel.domain.pricing import (
    DiscountLimit,
    PricingRuleLine,
    ProductPrice,
    StockRelation,
)

__all__ = [
    "APPROVAL_TRANSITIONS",
    "TERMINAL_APPROVAL_STATUSES",
    "ActionStatus",
    "ApprovalAction",
    "ApprovalRequest",
    "ApprovalStep",
    "DocumentApprovalStatus",
    "StepStatus",
    "WorkflowAction",
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CurrencyOption",
    "DiscountBasis",
    "DocumentHeader",
    "DocumentLine",
    "DocumentTotals",
    "ExchangeRateOverride",
    "GroupEntry",
    "LineApprovalStatus",
    "LineEntry",
    "OfficialRate",
    "ProductRef",
    "StandaloneEntry",
    "existing_line_id",
    "main_group_key",
    "new_line_id",
    "parse_line_id",
    "to_decimal",
    "DEMAND",
    "DOCUMENT_KINDS",
    "ORDER",
    "QUOTATION",
    "DocumentKind",
    "get_document_kind",
    "DiscountLimit",
    "PricingRuleLine",
    "ProductPrice",
    "StockRelation",
]
