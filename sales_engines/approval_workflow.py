"""
sales_engines.approval_workflow -- Pure approval-flow state machine.

Responsibility:
    Derive step and document approval status from the actions recorded on
    an approval request, decide which workflow actions a user may take, and
    produce the next request snapshot for start/approve/reject.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sales_kernel types.

Invariants enforced:
    - Document status moves only along ``APPROVAL_TRANSITIONS``:
      NotStarted -> Waiting -> {Approved, Rejected}.  Approved and
      Rejected are terminal and make the document read-only.
    - Steps are evaluated strictly in ``step_order``.  A step can only be
      InProgress or Completed once every earlier step is Completed.
    - Any rejected action rejects its step and the whole request.
    - Only the owner of a pending action in the active step may approve or
      reject it.  A reject reason is stored verbatim (None allowed).
    - Purity: the action timestamp is passed in, never read from a clock.

Failure modes:
    - ``InvalidApprovalTransitionError`` for a transition outside the table.
    - ``ApprovalActionNotAllowedError`` when the user has no matching
      pending action in the active step.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Iterable

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
from sales_kernel.domain.document import DocumentLine
from sales_kernel.exceptions import (
    ApprovalActionNotAllowedError,
    InvalidApprovalTransitionError,
)
from sales_kernel.logging_config import get_logger

logger = get_logger("engines.approval_workflow")


def coerce_status(status: int | DocumentApprovalStatus | None) -> DocumentApprovalStatus:
    """Document status from its wire code; a missing status is NotStarted."""
    if status is None:
        return DocumentApprovalStatus.NOT_STARTED
    return DocumentApprovalStatus(int(status))


def validate_transition(
    from_status: int | DocumentApprovalStatus | None,
    to_status: int | DocumentApprovalStatus,
) -> DocumentApprovalStatus:
    """Check a document status transition against the table.

    Returns:
        The target status.

    Raises:
        InvalidApprovalTransitionError: if the edge does not exist.
    """
    current = coerce_status(from_status)
    target = coerce_status(to_status)
    if target not in APPROVAL_TRANSITIONS[current]:
        raise InvalidApprovalTransitionError(current.name, target.name)
    return target


def is_readonly(status: int | DocumentApprovalStatus | None) -> bool:
    """True once the document reached a terminal approval status."""
    return coerce_status(status) in TERMINAL_APPROVAL_STATUSES


def document_requires_approval(lines: Iterable[DocumentLine]) -> bool:
    """True if any line (or nested related line) is flagged for approval."""
    for line in lines:
        if line.requires_approval:
            return True
        if document_requires_approval(line.related_lines):
            return True
    return False


# =========================================================================
# Step and document status derivation
# =========================================================================


def derive_step_status(step: ApprovalStep) -> StepStatus:
    """Status of one step from its actions, ignoring step order."""
    statuses = [a.status for a in step.actions]
    if ActionStatus.REJECTED in statuses:
        return StepStatus.REJECTED
    if statuses and all(s == ActionStatus.APPROVED for s in statuses):
        return StepStatus.COMPLETED
    if any(s != ActionStatus.PENDING for s in statuses):
        return StepStatus.IN_PROGRESS
    return StepStatus.NOT_STARTED


def derive_step_statuses(
    request: ApprovalRequest,
) -> tuple[tuple[ApprovalStep, StepStatus], ...]:
    """Ordered ``(step, status)`` pairs with step gating applied.

    Every step after the first non-Completed one is NotStarted, unless its
    own actions were rejected.
    """
    result: list[tuple[ApprovalStep, StepStatus]] = []
    gate_open = True
    for step in request.ordered_steps:
        status = derive_step_status(step)
        if not gate_open and status in (StepStatus.COMPLETED, StepStatus.IN_PROGRESS):
            status = StepStatus.NOT_STARTED
        if status != StepStatus.COMPLETED:
            gate_open = False
        result.append((step, status))
    return tuple(result)


def derive_overall_status(request: ApprovalRequest) -> DocumentApprovalStatus:
    """Document status implied by the request's steps.

    A request without steps keeps the status the server reported.
    """
    statuses = [status for _, status in derive_step_statuses(request)]
    if not statuses:
        return coerce_status(request.status)
    if StepStatus.REJECTED in statuses:
        return DocumentApprovalStatus.REJECTED
    if all(s == StepStatus.COMPLETED for s in statuses):
        return DocumentApprovalStatus.APPROVED
    return DocumentApprovalStatus.WAITING


def active_step(request: ApprovalRequest) -> ApprovalStep | None:
    """The step currently collecting approvals, or None when finished."""
    for step, status in derive_step_statuses(request):
        if status == StepStatus.REJECTED:
            return None
        if status != StepStatus.COMPLETED:
            return step
    return None


def pending_action_for(
    request: ApprovalRequest | None, user_id: int
) -> ApprovalAction | None:
    """The user's pending action in the active step, if any."""
    if request is None:
        return None
    step = active_step(request)
    if step is None:
        return None
    for action in step.actions:
        if action.user_id == user_id and action.is_pending:
            return action
    return None


def available_actions(
    status: int | DocumentApprovalStatus | None,
    request: ApprovalRequest | None,
    user_id: int,
) -> frozenset[WorkflowAction]:
    """Workflow actions the user may take on the document right now."""
    current = coerce_status(status)
    if current == DocumentApprovalStatus.NOT_STARTED:
        return frozenset({WorkflowAction.START_APPROVAL})
    if current == DocumentApprovalStatus.WAITING and pending_action_for(request, user_id):
        return frozenset({WorkflowAction.APPROVE, WorkflowAction.REJECT})
    return frozenset()


# =========================================================================
# Transitions
# =========================================================================


def start_approval(status: int | DocumentApprovalStatus | None) -> DocumentApprovalStatus:
    """Status after starting the approval flow (only from NotStarted)."""
    target = validate_transition(status, DocumentApprovalStatus.WAITING)
    logger.info("approval_started", extra={"from_status": coerce_status(status).name})
    return target


def _require_pending(
    request: ApprovalRequest, action_id: int, user_id: int
) -> ApprovalAction:
    if coerce_status(request.status) in TERMINAL_APPROVAL_STATUSES:
        raise ApprovalActionNotAllowedError(action_id, user_id, "request is closed")
    action = pending_action_for(request, user_id)
    if action is None:
        raise ApprovalActionNotAllowedError(
            action_id, user_id, "no pending action in the active step"
        )
    if action.action_id != action_id:
        raise ApprovalActionNotAllowedError(
            action_id, user_id, "action is not the user's pending action"
        )
    return action


def _with_action(request: ApprovalRequest, updated: ApprovalAction) -> ApprovalRequest:
    steps = tuple(
        replace(
            step,
            actions=tuple(
                updated if a.action_id == updated.action_id else a for a in step.actions
            ),
        )
        for step in request.steps
    )
    interim = replace(request, steps=steps)
    return replace(interim, status=derive_overall_status(interim))


def approve(
    request: ApprovalRequest,
    action_id: int,
    user_id: int,
    at: datetime | None = None,
) -> ApprovalRequest:
    """Approve the user's pending action; returns the next request snapshot.

    Raises:
        ApprovalActionNotAllowedError: if the user cannot act on ``action_id``.
    """
    action = _require_pending(request, action_id, user_id)
    result = _with_action(
        request, replace(action, status=ActionStatus.APPROVED, action_date=at)
    )
    if result.status != coerce_status(request.status):
        validate_transition(request.status, result.status)
    logger.info(
        "approval_action_approved",
        extra={
            "action_id": action_id,
            "user_id": user_id,
            "status": result.status.name,
        },
    )
    return result


def reject(
    request: ApprovalRequest,
    action_id: int,
    user_id: int,
    reason: str | None = None,
    at: datetime | None = None,
) -> ApprovalRequest:
    """Reject the user's pending action; the whole request becomes Rejected.

    Raises:
        ApprovalActionNotAllowedError: if the user cannot act on ``action_id``.
    """
    action = _require_pending(request, action_id, user_id)
    result = _with_action(
        request,
        replace(
            action,
            status=ActionStatus.REJECTED,
            action_date=at,
            reject_reason=reason,
        ),
    )
    result = replace(result, rejected_reason=reason)
    logger.info(
        "approval_action_rejected",
        extra={"action_id": action_id, "user_id": user_id},
    )
    return result
