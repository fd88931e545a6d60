"""
Approval mapping: flow reports and waiting-approval lists into
``ApprovalRequest`` snapshots, and approval action payloads.  ZERO I/O.

The flow report lists steps and per-user actions but not the ids of the
actions; those come from the current user's waiting-approval list.  Report
actions that no waiting entry explains get negative placeholder ids, which
never match a real action id.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping, Sequence

from sales_kernel.domain.approval import (
    ActionStatus,
    ApprovalAction,
    ApprovalRequest,
    ApprovalStep,
    DocumentApprovalStatus,
)
from sales_kernel.domain.document_kind import DocumentKind
from sales_kernel.exceptions import ApprovalRequestNotFoundError
from sales_kernel.logging_config import get_logger

logger = get_logger("mapping.approval")


@dataclass(frozen=True)
class WaitingApproval:
    """An approval action waiting on the current user."""

    action_id: int
    approval_request_id: int
    step_order: int
    user_id: int
    status: ActionStatus = ActionStatus.PENDING
    description: str | None = None


def parse_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        logger.warning("unparsable_datetime", extra={"value": str(value)})
        return None


def waiting_approvals_from_records(
    records: Iterable[Mapping[str, Any]],
) -> tuple[WaitingApproval, ...]:
    return tuple(
        WaitingApproval(
            action_id=int(r["id"]),
            approval_request_id=int(r["approvalRequestId"]),
            step_order=int(r["stepOrder"]),
            user_id=int(r["approvedByUserId"]),
            status=ActionStatus(int(r.get("status") or ActionStatus.PENDING)),
            description=r.get("approvalRequestDescription"),
        )
        for r in records
    )


def find_waiting_action(
    waiting: Sequence[WaitingApproval], step_order: int, user_id: int
) -> WaitingApproval | None:
    """The user's waiting entry for a step, if any."""
    for entry in waiting:
        if entry.step_order == step_order and entry.user_id == user_id:
            return entry
    return None


def approval_request_from_report(
    report: Mapping[str, Any],
    kind: DocumentKind,
    waiting: Sequence[WaitingApproval] = (),
) -> ApprovalRequest:
    """Approval request snapshot from a document's flow report.

    Raises:
        ApprovalRequestNotFoundError: if the report says the document has
            no approval request.
    """
    document_id = int(report.get(kind.parent_id_field) or 0)
    if not report.get("hasApprovalRequest"):
        raise ApprovalRequestNotFoundError(document_id)

    steps: list[ApprovalStep] = []
    for step in report.get("steps") or ():
        step_order = int(step["stepOrder"])
        actions: list[ApprovalAction] = []
        for idx, action in enumerate(step.get("actions") or (), start=1):
            user_id = int(action["userId"])
            action_id = action.get("id") or action.get("approvalActionId")
            if action_id is None:
                entry = find_waiting_action(waiting, step_order, user_id)
                action_id = entry.action_id if entry else -(step_order * 1000 + idx)
            actions.append(
                ApprovalAction(
                    action_id=int(action_id),
                    user_id=user_id,
                    status=ActionStatus(int(action.get("status") or ActionStatus.PENDING)),
                    user_full_name=action.get("userFullName"),
                    action_date=parse_datetime(action.get("actionDate")),
                    reject_reason=action.get("rejectedReason"),
                )
            )
        steps.append(
            ApprovalStep(
                step_order=step_order,
                name=step.get("stepName") or "",
                actions=tuple(actions),
            )
        )

    overall = report.get("overallStatus")
    return ApprovalRequest(
        document_id=document_id,
        status=DocumentApprovalStatus(
            int(overall) if overall is not None else DocumentApprovalStatus.WAITING
        ),
        steps=tuple(steps),
        description=report.get("flowDescription"),
        rejected_reason=report.get("rejectedReason"),
    )


def start_approval_payload(document_id: int) -> dict[str, Any]:
    return {"documentId": document_id}


def approve_payload(action_id: int) -> dict[str, Any]:
    return {"approvalActionId": action_id}


def reject_payload(action_id: int, reason: str | None = None) -> dict[str, Any]:
    """Reject payload; the reason is sent verbatim and omitted when None."""
    payload: dict[str, Any] = {"approvalActionId": action_id}
    if reason is not None:
        payload["rejectReason"] = reason
    return payload
