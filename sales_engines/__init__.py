"""
Module: sales_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for higher layers
    (sales_services, sales_mapping).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sales_kernel (and sibling engine modules).
    MUST NOT import sales_services or sales_mapping.

Invariants enforced:
    - Purity: engines never read the clock; timestamps are passed in.
    - Decimal-only arithmetic: amounts, rates and quantities are ``Decimal``.
    - Determinism and idempotence: recomputing a computed line yields an
      equal line.

Audit relevance:
    Engine invocations are traced via ``@traced_engine`` (see
    ``sales_engines.tracer``), emitting SALES_ENGINE_TRACE debug records.

Usage:
    from sales_engines import compute_line_totals, apply_discount_limits
    from sales_engines import resolve_rate, apply_main_quantity_change
    from sales_engines import approve, available_actions
"""

from sales_kernel.logging_config import get_logger

logger = get_logger("engines")

from sales_engines.approval_workflow import (
    active_step,
    approve,
    available_actions,
    derive_overall_status,
    derive_step_status,
    derive_step_statuses,
    document_requires_approval,
    is_readonly,
    pending_action_for,
    reject,
    start_approval,
    validate_transition,
)
from sales_engines.discount_limits import (
    DiscountLimitEvaluation,
    apply_discount_limits,
    evaluate,
    find_limit,
)
from sales_engines.exchange_rates import (
    convert_price,
    currency_change_ratio,
    edit_override,
    effective_rates,
    is_currency_in_use,
    reprice_for_currency_change,
    resolve_rate,
)
from sales_engines.line_calculator import (
    calculate_document_totals,
    clamp_discount_rate,
    compute_line_totals,
    round_money,
    set_discount_amount,
    set_discount_rate,
    update_line,
)
from sales_engines.pricing_rules import (
    apply_pricing_rule,
    apply_product_price,
    find_matching_rule,
)
from sales_engines.related_products import (
    add_lines,
    apply_main_quantity_change,
    build_related_group,
    delete_line,
    flatten,
    group_lines,
    resize_related_lines,
    save_edited_line,
    visible_lines,
)

__all__ = [
    # Line calculator
    "calculate_document_totals",
    "clamp_discount_rate",
    "compute_line_totals",
    "round_money",
    "set_discount_amount",
    "set_discount_rate",
    "update_line",
    # Exchange rates
    "convert_price",
    "currency_change_ratio",
    "edit_override",
    "effective_rates",
    "is_currency_in_use",
    "reprice_for_currency_change",
    "resolve_rate",
    # Related products
    "add_lines",
    "apply_main_quantity_change",
    "build_related_group",
    "delete_line",
    "flatten",
    "group_lines",
    "resize_related_lines",
    "save_edited_line",
    "visible_lines",
    # Discount limits
    "DiscountLimitEvaluation",
    "apply_discount_limits",
    "evaluate",
    "find_limit",
    # Pricing rules
    "apply_pricing_rule",
    "apply_product_price",
    "find_matching_rule",
    # Approval workflow
    "active_step",
    "approve",
    "available_actions",
    "derive_overall_status",
    "derive_step_status",
    "derive_step_statuses",
    "document_requires_approval",
    "is_readonly",
    "pending_action_for",
    "reject",
    "start_approval",
    "validate_transition",
]

logger.debug("engines_package_loaded", extra={
    "module_count": 6,
    "modules": [
        "line_calculator", "exchange_rates", "related_products",
        "discount_limits", "pricing_rules", "approval_workflow",
    ],
})
