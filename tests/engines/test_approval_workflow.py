"""
Tests for the approval workflow state machine.

Covers:
- Status transition table and read-only terminal states
- Step status derivation and step gating
- Overall status derivation
- Available actions per user
- approve / reject snapshots and their guards
"""

from datetime import datetime, timezone

import pytest

from sales_engines.approval_workflow import (
    active_step,
    approve,
    available_actions,
    coerce_status,
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
from sales_kernel.domain.approval import (
    ActionStatus,
    ApprovalAction,
    ApprovalRequest,
    ApprovalStep,
    DocumentApprovalStatus,
    StepStatus,
    WorkflowAction,
)
from sales_kernel.exceptions import (
    ApprovalActionNotAllowedError,
    InvalidApprovalTransitionError,
)
from tests.conftest import make_line

AT = datetime(2024, 3, 15, 9, 30, tzinfo=timezone.utc)


def make_action(action_id, user_id, status=ActionStatus.PENDING):
    return ApprovalAction(action_id=action_id, user_id=user_id, status=status)


def make_step(order, *actions, name=None):
    return ApprovalStep(step_order=order, name=name or f"Step {order}", actions=actions)


def make_request(*steps, status=DocumentApprovalStatus.WAITING):
    return ApprovalRequest(document_id=42, status=status, steps=steps)


class TestTransitions:
    """NotStarted -> Waiting -> {Approved, Rejected}."""

    @pytest.mark.parametrize(
        "from_status, to_status",
        [(0, 1), (None, 1), (1, 2), (1, 3)],
    )
    def test_valid(self, from_status, to_status):
        assert validate_transition(from_status, to_status) == to_status

    @pytest.mark.parametrize(
        "from_status, to_status",
        [(0, 2), (0, 3), (1, 0), (2, 1), (3, 1), (2, 3)],
    )
    def test_invalid(self, from_status, to_status):
        with pytest.raises(InvalidApprovalTransitionError) as exc_info:
            validate_transition(from_status, to_status)
        assert exc_info.value.code == "INVALID_APPROVAL_TRANSITION"

    def test_status_codes_are_stable(self):
        assert [int(s) for s in DocumentApprovalStatus] == [0, 1, 2, 3]

    def test_missing_status_is_not_started(self):
        assert coerce_status(None) == DocumentApprovalStatus.NOT_STARTED

    def test_readonly_only_when_terminal(self):
        assert [is_readonly(s) for s in (None, 0, 1, 2, 3)] == [
            False,
            False,
            False,
            True,
            True,
        ]

    def test_start_approval(self):
        assert start_approval(0) == DocumentApprovalStatus.WAITING
        with pytest.raises(InvalidApprovalTransitionError):
            start_approval(1)


class TestStepStatus:
    """Step status from its actions."""

    def test_all_pending_is_not_started(self):
        assert derive_step_status(make_step(1, make_action(1, 10))) == StepStatus.NOT_STARTED

    def test_empty_step_is_not_started(self):
        assert derive_step_status(make_step(1)) == StepStatus.NOT_STARTED

    def test_partial_is_in_progress(self):
        step = make_step(
            1, make_action(1, 10, ActionStatus.APPROVED), make_action(2, 11)
        )
        assert derive_step_status(step) == StepStatus.IN_PROGRESS

    def test_all_approved_is_completed(self):
        step = make_step(1, make_action(1, 10, ActionStatus.APPROVED))
        assert derive_step_status(step) == StepStatus.COMPLETED

    def test_any_rejected_is_rejected(self):
        step = make_step(
            1,
            make_action(1, 10, ActionStatus.APPROVED),
            make_action(2, 11, ActionStatus.REJECTED),
        )
        assert derive_step_status(step) == StepStatus.REJECTED


class TestStepGating:
    """Later steps wait for earlier ones."""

    def test_later_step_not_started_until_earlier_completed(self):
        request = make_request(
            make_step(2, make_action(3, 12, ActionStatus.APPROVED)),
            make_step(1, make_action(1, 10)),
        )
        statuses = [(s.step_order, st) for s, st in derive_step_statuses(request)]
        assert statuses == [(1, StepStatus.NOT_STARTED), (2, StepStatus.NOT_STARTED)]

    def test_rejection_survives_gating(self):
        request = make_request(
            make_step(1, make_action(1, 10)),
            make_step(2, make_action(2, 11, ActionStatus.REJECTED)),
        )
        statuses = [st for _, st in derive_step_statuses(request)]
        assert statuses == [StepStatus.NOT_STARTED, StepStatus.REJECTED]
        assert derive_overall_status(request) == DocumentApprovalStatus.REJECTED

    def test_active_step(self):
        request = make_request(
            make_step(1, make_action(1, 10, ActionStatus.APPROVED)),
            make_step(2, make_action(2, 11)),
        )
        assert active_step(request).step_order == 2

    def test_no_active_step_when_finished_or_rejected(self):
        done = make_request(make_step(1, make_action(1, 10, ActionStatus.APPROVED)))
        rejected = make_request(make_step(1, make_action(1, 10, ActionStatus.REJECTED)))
        assert active_step(done) is None
        assert active_step(rejected) is None


class TestOverallStatus:
    def test_all_completed_is_approved(self):
        request = make_request(
            make_step(1, make_action(1, 10, ActionStatus.APPROVED)),
            make_step(2, make_action(2, 11, ActionStatus.APPROVED)),
        )
        assert derive_overall_status(request) == DocumentApprovalStatus.APPROVED

    def test_in_flight_is_waiting(self):
        request = make_request(make_step(1, make_action(1, 10)))
        assert derive_overall_status(request) == DocumentApprovalStatus.WAITING

    def test_no_steps_keeps_server_status(self):
        request = make_request(status=DocumentApprovalStatus.APPROVED)
        assert derive_overall_status(request) == DocumentApprovalStatus.APPROVED


class TestAvailableActions:
    """What the current user may do."""

    def setup_method(self):
        self.request = make_request(
            make_step(1, make_action(1, 10, ActionStatus.APPROVED)),
            make_step(2, make_action(2, 11), make_action(3, 12)),
        )

    def test_not_started_offers_start(self):
        assert available_actions(0, None, 10) == {WorkflowAction.START_APPROVAL}
        assert available_actions(None, None, 10) == {WorkflowAction.START_APPROVAL}

    def test_pending_user_may_approve_or_reject(self):
        assert available_actions(1, self.request, 11) == {
            WorkflowAction.APPROVE,
            WorkflowAction.REJECT,
        }

    def test_user_in_completed_step_has_nothing(self):
        assert available_actions(1, self.request, 10) == frozenset()

    def test_user_in_gated_step_has_nothing(self):
        request = make_request(
            make_step(1, make_action(1, 10)),
            make_step(2, make_action(2, 11)),
        )
        assert pending_action_for(request, 11) is None
        assert available_actions(1, request, 11) == frozenset()

    def test_terminal_status_has_nothing(self):
        assert available_actions(2, self.request, 11) == frozenset()
        assert available_actions(3, self.request, 11) == frozenset()

    def test_waiting_without_request(self):
        assert available_actions(1, None, 11) == frozenset()


class TestApproveAndReject:
    """Next request snapshots."""

    def setup_method(self):
        self.request = make_request(
            make_step(1, make_action(1, 10)),
            make_step(2, make_action(2, 11)),
        )

    def test_approve_advances_to_next_step(self):
        result = approve(self.request, 1, 10, at=AT)

        assert result.status == DocumentApprovalStatus.WAITING
        assert active_step(result).step_order == 2
        action = result.ordered_steps[0].actions[0]
        assert action.status == ActionStatus.APPROVED
        assert action.action_date == AT
        assert self.request.steps[0].actions[0].status == ActionStatus.PENDING

    def test_last_approval_approves_document(self):
        result = approve(approve(self.request, 1, 10), 2, 11)
        assert result.status == DocumentApprovalStatus.APPROVED

    def test_reject_stores_reason_verbatim(self):
        result = reject(self.request, 1, 10, reason="  price too low ", at=AT)

        assert result.status == DocumentApprovalStatus.REJECTED
        assert result.rejected_reason == "  price too low "
        assert result.ordered_steps[0].actions[0].reject_reason == "  price too low "

    def test_reject_without_reason(self):
        result = reject(self.request, 1, 10)
        assert result.status == DocumentApprovalStatus.REJECTED
        assert result.rejected_reason is None

    def test_approve_out_of_turn_rejected(self):
        with pytest.raises(ApprovalActionNotAllowedError) as exc_info:
            approve(self.request, 2, 11)
        assert exc_info.value.code == "APPROVAL_ACTION_NOT_ALLOWED"

    def test_wrong_action_id_rejected(self):
        with pytest.raises(ApprovalActionNotAllowedError):
            approve(self.request, 99, 10)

    def test_closed_request_rejected(self):
        closed = reject(self.request, 1, 10)
        with pytest.raises(ApprovalActionNotAllowedError):
            approve(closed, 2, 11)


class TestDocumentRequiresApproval:
    def test_flag_on_any_line(self):
        assert not document_requires_approval([make_line(), make_line()])
        assert document_requires_approval([make_line(), make_line(approval_status=1)])

    def test_flag_on_nested_related_line(self):
        main = make_line(related_lines=(make_line(approval_status=1),))
        assert document_requires_approval([main])
