"""
Discount Limits - Flag lines whose discounts exceed the salesperson's limit.

Pure functions with no I/O.  The check is advisory: a violation never blocks
a save, it sets ``approval_status = 1`` on the line so that the document
goes through approval.

Rule:
    limit = first DiscountLimit whose erp_product_group_code equals the
            line's product group code
    violation if  d1 > max1
              or  (max2 defined and d2 > max2)
              or  (max3 defined and d3 > max3)

Lines without a group code, or whose group has no limit, are not flagged.

Usage:
    from sales_engines.discount_limits import apply_discount_limits

    line = apply_discount_limits(line, limits)
    if line.requires_approval:
        ...
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Sequence

from sales_engines.tracer import traced_engine
from sales_kernel.domain.document import DocumentLine, LineApprovalStatus
from sales_kernel.domain.pricing import DiscountLimit
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.discount_limits")

LIMIT_EXCEEDED_MESSAGE = "Discount limit exceeded. Maximum: %{0} / %{1} / %{2}"


@dataclass(frozen=True)
class DiscountLimitEvaluation:
    """Result of checking one line against the discount limits."""

    approval_status: LineApprovalStatus
    message: str = ""
    limit: DiscountLimit | None = None
    violations: tuple[int, ...] = ()

    @property
    def exceeded(self) -> bool:
        return self.approval_status == LineApprovalStatus.REQUIRED


def find_limit(
    group_code: str | None, limits: Sequence[DiscountLimit]
) -> DiscountLimit | None:
    """The limit row for a product group, or None."""
    if not group_code:
        return None
    for limit in limits:
        if limit.erp_product_group_code == group_code:
            return limit
    return None


def _format_max(value: Decimal | None) -> str:
    if not value:
        return "-"
    return format(value.normalize(), "f")


def limit_message(limit: DiscountLimit) -> str:
    return LIMIT_EXCEEDED_MESSAGE.format(
        format(limit.max_discount1.normalize(), "f"),
        _format_max(limit.max_discount2),
        _format_max(limit.max_discount3),
    )


@traced_engine("discount_limits", "1.0", fingerprint_fields=("limits",))
def evaluate(
    line: DocumentLine, limits: Sequence[DiscountLimit]
) -> DiscountLimitEvaluation:
    """Check a line's three discount rates against its group's limit."""
    limit = find_limit(line.group_code, limits)
    if limit is None:
        return DiscountLimitEvaluation(approval_status=LineApprovalStatus.NOT_REQUIRED)

    violations = tuple(
        slot
        for slot, (rate, maximum) in enumerate(
            zip(line.discount_rates, limit.maximums), start=1
        )
        if maximum is not None and rate > maximum
    )
    if not violations:
        return DiscountLimitEvaluation(
            approval_status=LineApprovalStatus.NOT_REQUIRED, limit=limit
        )

    logger.info(
        "discount_limit_exceeded",
        extra={
            "local_id": line.local_id,
            "group_code": limit.erp_product_group_code,
            "violations": list(violations),
        },
    )
    return DiscountLimitEvaluation(
        approval_status=LineApprovalStatus.REQUIRED,
        message=limit_message(limit),
        limit=limit,
        violations=violations,
    )


def apply_discount_limits(
    line: DocumentLine, limits: Sequence[DiscountLimit]
) -> DocumentLine:
    """Return ``line`` with ``approval_status`` set from the limit check.

    Nested related lines are checked too.
    """
    related = tuple(apply_discount_limits(r, limits) for r in line.related_lines)
    status = evaluate(line, limits).approval_status
    if status == line.approval_status and related == line.related_lines:
        return line
    return replace(line, approval_status=status, related_lines=related)
