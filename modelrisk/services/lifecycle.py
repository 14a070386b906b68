"""Lifecycle guards for use cases and validation findings.

These functions hold no I/O. They decide whether an action is legal from
the current state and build the audit detail strings recorded alongside
each transition. Services call them before writing, and repeat the same
source states in the predicate of their conditional UPDATE.
"""

import enum
import json

from modelrisk.errors import AlreadyDoneError, InvalidStateError
from modelrisk.models.use_case import UseCaseStatus
from modelrisk.models.validation import RemediationStatus
from modelrisk.utils.presentation import truncate

NOT_REVIEWABLE_MESSAGE = "Use case is not in a reviewable state"
NO_DECISION_MESSAGE = "Cannot approve without a generated decision"
NOT_SUBMITTABLE_MESSAGE = "Only draft use cases can be submitted"
ALREADY_REMEDIATED_MESSAGE = "Finding is already remediated"
ALREADY_SIGNED_OFF_MESSAGE = "Finding has already been signed off"
NOT_SIGNABLE_MESSAGE = "Finding must be remediated or accepted before sign-off"
NOT_EDITABLE_MESSAGE = "Only draft or sent back use cases can be changed"
REMEDIATE_VIA_ACTION_MESSAGE = "Use the remediate action to mark a finding remediated"

DEFAULT_SEND_BACK_NOTES = "Please review and update your submission."
SEND_BACK_FALLBACK_DETAILS = "Sent back for revision"
DETAILS_MAX_LENGTH = 100


class ReviewAction(str, enum.Enum):
    """Actions that move a use case between lifecycle states."""
    SUBMIT = "Submit"
    APPROVE = "Approve"
    SEND_BACK = "SendBack"


REVIEWABLE_STATUSES: frozenset[UseCaseStatus] = frozenset(
    {UseCaseStatus.SUBMITTED, UseCaseStatus.UNDER_REVIEW}
)

# action -> (legal source states, resulting state)
TRANSITIONS: dict[ReviewAction, tuple[frozenset[UseCaseStatus], UseCaseStatus]] = {
    ReviewAction.SUBMIT: (frozenset({UseCaseStatus.DRAFT}), UseCaseStatus.SUBMITTED),
    ReviewAction.APPROVE: (REVIEWABLE_STATUSES, UseCaseStatus.APPROVED),
    ReviewAction.SEND_BACK: (REVIEWABLE_STATUSES, UseCaseStatus.SENT_BACK),
}

EDITABLE_STATUSES: frozenset[UseCaseStatus] = frozenset(
    {UseCaseStatus.DRAFT, UseCaseStatus.SENT_BACK}
)

SIGNABLE_STATUSES: frozenset[RemediationStatus] = frozenset(
    {RemediationStatus.REMEDIATED, RemediationStatus.ACCEPTED}
)


def source_states(action: ReviewAction) -> frozenset[UseCaseStatus]:
    """Return the states from which ``action`` is legal."""
    return TRANSITIONS[action][0]


def check_transition(
    status: UseCaseStatus | str,
    action: ReviewAction,
    has_decision: bool = False,
) -> UseCaseStatus:
    """
    Decide whether ``action`` is legal from ``status``.

    Args:
        status: Current use case status
        action: Requested action
        has_decision: Whether a Decision exists for the use case

    Returns:
        The status the use case moves to.

    Raises:
        InvalidStateError: If the source state is illegal, or approval is
            requested without a decision.
    """
    sources, target = TRANSITIONS[action]
    current = UseCaseStatus(status)

    if current not in sources:
        message = NOT_SUBMITTABLE_MESSAGE if action == ReviewAction.SUBMIT else NOT_REVIEWABLE_MESSAGE
        raise InvalidStateError(message, current_status=current.value)

    if action == ReviewAction.APPROVE and not has_decision:
        raise InvalidStateError(NO_DECISION_MESSAGE, current_status=current.value)

    return target


def approval_details(tier: str) -> str:
    return f"Use case approved with tier {tier}"


def send_back_details(notes: str | None) -> str:
    """Audit details for a send-back: the notes, capped at 100 characters."""
    if not notes:
        return SEND_BACK_FALLBACK_DETAILS
    return truncate(notes, DETAILS_MAX_LENGTH)


def submission_details() -> str:
    return json.dumps({
        "previousStatus": UseCaseStatus.DRAFT.value,
        "newStatus": UseCaseStatus.SUBMITTED.value,
    })


def check_remediation(status: RemediationStatus | str) -> RemediationStatus:
    """
    Decide whether a finding may be marked remediated.

    Raises:
        AlreadyDoneError: If the finding is already remediated.
    """
    if RemediationStatus(status) == RemediationStatus.REMEDIATED:
        raise AlreadyDoneError(ALREADY_REMEDIATED_MESSAGE)
    return RemediationStatus.REMEDIATED


def check_sign_off(status: RemediationStatus | str, signed_off: bool) -> None:
    """
    Decide whether a finding may be signed off.

    Raises:
        AlreadyDoneError: If the finding has already been signed off.
        InvalidStateError: If it is neither remediated nor accepted.
    """
    if signed_off:
        raise AlreadyDoneError(ALREADY_SIGNED_OFF_MESSAGE)
    current = RemediationStatus(status)
    if current not in SIGNABLE_STATUSES:
        raise InvalidStateError(NOT_SIGNABLE_MESSAGE, current_status=current.value)


def check_editable(status: UseCaseStatus | str) -> None:
    """
    Decide whether a use case's intake may be edited or the use case deleted.

    Raises:
        InvalidStateError: Once the use case is under review or decided.
    """
    current = UseCaseStatus(status)
    if current not in EDITABLE_STATUSES:
        raise InvalidStateError(NOT_EDITABLE_MESSAGE, current_status=current.value)


def check_finding_update(signed_off: bool, new_status: RemediationStatus | str | None) -> None:
    """
    Decide whether a finding may be edited.

    Raises:
        AlreadyDoneError: If the finding has been signed off.
        InvalidStateError: If the edit would mark it Remediated.
    """
    if signed_off:
        raise AlreadyDoneError(ALREADY_SIGNED_OFF_MESSAGE)
    if new_status is not None and RemediationStatus(new_status) == RemediationStatus.REMEDIATED:
        raise InvalidStateError(REMEDIATE_VIA_ACTION_MESSAGE)
