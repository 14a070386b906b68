"""
Unit tests for the lifecycle guards.

Tests cover:
- Submit, Approve and SendBack legality per source state
- Approval requiring a decision
- Remediation and sign-off guards
- Edit guards for use cases and findings
- Audit detail strings

Source: pytest best practices
"""

import json

import pytest

from modelrisk.errors import AlreadyDoneError, InvalidStateError
from modelrisk.models.use_case import UseCaseStatus
from modelrisk.models.validation import RemediationStatus
from modelrisk.services import lifecycle
from modelrisk.services.lifecycle import ReviewAction


@pytest.mark.unit
class TestCheckTransition:
    """Tests for use case transitions."""

    @pytest.mark.parametrize("status", [UseCaseStatus.SUBMITTED, UseCaseStatus.UNDER_REVIEW])
    def test_approve_from_reviewable_state(self, status):
        """Test approval is legal from Submitted and Under Review."""
        target = lifecycle.check_transition(status, ReviewAction.APPROVE, has_decision=True)
        assert target == UseCaseStatus.APPROVED

    @pytest.mark.parametrize(
        "status",
        [
            UseCaseStatus.DRAFT,
            UseCaseStatus.APPROVED,
            UseCaseStatus.REJECTED,
            UseCaseStatus.SENT_BACK,
        ],
    )
    def test_approve_from_other_state_rejected(self, status):
        """Test approval outside review raises the not-reviewable error."""
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_transition(status, ReviewAction.APPROVE, has_decision=True)

        assert exc_info.value.message == "Use case is not in a reviewable state"
        assert exc_info.value.current_status == status.value

    def test_approve_without_decision_rejected(self):
        """Test approval needs a generated decision."""
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_transition(UseCaseStatus.SUBMITTED, ReviewAction.APPROVE)

        assert exc_info.value.message == "Cannot approve without a generated decision"

    def test_state_checked_before_decision(self):
        """Test a draft without decision reports the state problem first."""
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_transition(UseCaseStatus.DRAFT, ReviewAction.APPROVE)

        assert exc_info.value.message == lifecycle.NOT_REVIEWABLE_MESSAGE

    @pytest.mark.parametrize("status", ["Submitted", "Under Review"])
    def test_send_back_accepts_string_status(self, status):
        """Test send back works from raw status strings."""
        target = lifecycle.check_transition(status, ReviewAction.SEND_BACK)
        assert target == UseCaseStatus.SENT_BACK

    def test_send_back_does_not_need_decision(self):
        """Test send back is legal without a decision."""
        target = lifecycle.check_transition(UseCaseStatus.SUBMITTED, ReviewAction.SEND_BACK)
        assert target == UseCaseStatus.SENT_BACK

    def test_send_back_from_approved_rejected(self):
        with pytest.raises(InvalidStateError):
            lifecycle.check_transition(UseCaseStatus.APPROVED, ReviewAction.SEND_BACK)

    def test_submit_from_draft(self):
        """Test only drafts can be submitted."""
        assert lifecycle.check_transition(UseCaseStatus.DRAFT, ReviewAction.SUBMIT) == UseCaseStatus.SUBMITTED

    def test_submit_from_submitted_rejected(self):
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_transition(UseCaseStatus.SUBMITTED, ReviewAction.SUBMIT)

        assert exc_info.value.message == "Only draft use cases can be submitted"

    def test_source_states(self):
        """Test approve and send back share the reviewable states."""
        assert lifecycle.source_states(ReviewAction.APPROVE) == lifecycle.REVIEWABLE_STATUSES
        assert lifecycle.source_states(ReviewAction.SEND_BACK) == lifecycle.REVIEWABLE_STATUSES
        assert lifecycle.source_states(ReviewAction.SUBMIT) == {UseCaseStatus.DRAFT}


@pytest.mark.unit
class TestAuditDetails:
    """Tests for audit detail strings."""

    def test_approval_details(self):
        assert lifecycle.approval_details("T3") == "Use case approved with tier T3"

    def test_send_back_details_short_notes(self):
        """Test short notes are recorded unchanged."""
        assert lifecycle.send_back_details("Add monitoring plan") == "Add monitoring plan"

    def test_send_back_details_truncated(self):
        """Test notes beyond 100 characters are cut with an ellipsis."""
        notes = "x" * 150
        details = lifecycle.send_back_details(notes)

        assert details == "x" * 100 + "..."

    def test_send_back_details_exactly_100(self):
        notes = "y" * 100
        assert lifecycle.send_back_details(notes) == notes

    @pytest.mark.parametrize("notes", [None, ""])
    def test_send_back_details_without_notes(self, notes):
        """Test missing notes fall back to a fixed phrase."""
        assert lifecycle.send_back_details(notes) == "Sent back for revision"

    def test_submission_details(self):
        details = json.loads(lifecycle.submission_details())
        assert details == {"previousStatus": "Draft", "newStatus": "Submitted"}


@pytest.mark.unit
class TestFindingGuards:
    """Tests for remediation and sign-off guards."""

    @pytest.mark.parametrize(
        "status",
        [RemediationStatus.OPEN, RemediationStatus.IN_PROGRESS, RemediationStatus.ACCEPTED],
    )
    def test_remediation_allowed(self, status):
        assert lifecycle.check_remediation(status) == RemediationStatus.REMEDIATED

    def test_remediation_twice_rejected(self):
        """Test an already remediated finding cannot be remediated again."""
        with pytest.raises(AlreadyDoneError) as exc_info:
            lifecycle.check_remediation("Remediated")

        assert exc_info.value.message == "Finding is already remediated"

    @pytest.mark.parametrize("status", [RemediationStatus.REMEDIATED, RemediationStatus.ACCEPTED])
    def test_sign_off_allowed(self, status):
        assert lifecycle.check_sign_off(status, signed_off=False) is None

    def test_sign_off_open_finding_rejected(self):
        """Test open findings cannot be signed off."""
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_sign_off(RemediationStatus.OPEN, signed_off=False)

        assert exc_info.value.message == "Finding must be remediated or accepted before sign-off"

    def test_sign_off_twice_rejected(self):
        """Test a signed-off finding reports already done, even when remediated."""
        with pytest.raises(AlreadyDoneError) as exc_info:
            lifecycle.check_sign_off(RemediationStatus.REMEDIATED, signed_off=True)

        assert exc_info.value.message == "Finding has already been signed off"


@pytest.mark.unit
class TestEditGuards:
    """Tests for use case and finding edit guards."""

    @pytest.mark.parametrize("status", [UseCaseStatus.DRAFT, "Sent Back"])
    def test_editable(self, status):
        assert lifecycle.check_editable(status) is None

    @pytest.mark.parametrize(
        "status",
        [
            UseCaseStatus.SUBMITTED,
            UseCaseStatus.UNDER_REVIEW,
            UseCaseStatus.APPROVED,
            UseCaseStatus.REJECTED,
        ],
    )
    def test_not_editable(self, status):
        with pytest.raises(InvalidStateError) as exc_info:
            lifecycle.check_editable(status)

        assert exc_info.value.message == "Only draft or sent back use cases can be changed"

    @pytest.mark.parametrize("new_status", [None, "In Progress", RemediationStatus.ACCEPTED])
    def test_finding_update_allowed(self, new_status):
        assert lifecycle.check_finding_update(False, new_status) is None

    def test_finding_update_cannot_remediate(self):
        with pytest.raises(InvalidStateError):
            lifecycle.check_finding_update(False, RemediationStatus.REMEDIATED)

    def test_signed_off_finding_locked(self):
        with pytest.raises(AlreadyDoneError) as exc_info:
            lifecycle.check_finding_update(True, None)

        assert exc_info.value.message == "Finding has already been signed off"
