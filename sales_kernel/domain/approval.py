"""
Approval domain types (``sales_kernel.domain.approval``).

Responsibility
--------------
Pure value objects for the document approval flow: the document-level
status lifecycle, ordered approval steps, per-user approval actions, and
the UI actions a user may take.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Document approval status codes are a closed, persisted enumeration:
  ``0=NotStarted, 1=Waiting, 2=Approved, 3=Rejected``.  The numeric values
  must never change.
* ``APPROVAL_TRANSITIONS`` defines the only valid status transitions.
  Terminal states have no outgoing edges.
* ``ApprovalRequest`` structure (steps, actions) is fixed once started;
  only statuses inside it change.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum


# =========================================================================
# Document Approval Status Lifecycle
# =========================================================================


class DocumentApprovalStatus(IntEnum):
    """Document-level approval status (persisted server-side)."""

    NOT_STARTED = 0
    WAITING = 1
    APPROVED = 2
    REJECTED = 3


APPROVAL_TRANSITIONS: dict[DocumentApprovalStatus, frozenset[DocumentApprovalStatus]] = {
    DocumentApprovalStatus.NOT_STARTED: frozenset({
        DocumentApprovalStatus.WAITING,
    }),
    DocumentApprovalStatus.WAITING: frozenset({
        DocumentApprovalStatus.APPROVED,
        DocumentApprovalStatus.REJECTED,
    }),
    DocumentApprovalStatus.APPROVED: frozenset(),
    DocumentApprovalStatus.REJECTED: frozenset(),
}

TERMINAL_APPROVAL_STATUSES: frozenset[DocumentApprovalStatus] = frozenset({
    DocumentApprovalStatus.APPROVED,
    DocumentApprovalStatus.REJECTED,
})


class StepStatus(str, Enum):
    """Derived status of one approval step (wire values of the flow report)."""

    NOT_STARTED = "NotStarted"
    IN_PROGRESS = "InProgress"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


class ActionStatus(IntEnum):
    """Status of a single user's approval action."""

    PENDING = 1
    APPROVED = 2
    REJECTED = 3


class WorkflowAction(str, Enum):
    """Document-level actions offered to the current user."""

    START_APPROVAL = "start_approval"
    APPROVE = "approve"
    REJECT = "reject"


# =========================================================================
# Request, Step and Action Records
# =========================================================================


@dataclass(frozen=True)
class ApprovalAction:
    """One approver's action inside a step. Immutable."""

    action_id: int
    user_id: int
    status: ActionStatus = ActionStatus.PENDING
    user_full_name: str | None = None
    action_date: datetime | None = None
    reject_reason: str | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == ActionStatus.PENDING


@dataclass(frozen=True)
class ApprovalStep:
    """An ordered step of the approval flow."""

    step_order: int
    name: str
    actions: tuple[ApprovalAction, ...] = ()


@dataclass(frozen=True)
class ApprovalRequest:
    """Immutable snapshot of a document's approval request.

    ``status`` is the last status reported by the server; the engine
    re-derives it from step actions via ``derive_overall_status``.
    """

    document_id: int
    status: DocumentApprovalStatus = DocumentApprovalStatus.WAITING
    steps: tuple[ApprovalStep, ...] = ()
    description: str | None = None
    rejected_reason: str | None = None

    @property
    def ordered_steps(self) -> tuple[ApprovalStep, ...]:
        return tuple(sorted(self.steps, key=lambda s: s.step_order))
