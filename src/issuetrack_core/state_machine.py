"""State machine validation for issue status transitions.

Enforces valid status transitions to maintain triage workflow integrity:
- Issues move forward through assignment, work and review
- CLOSED and WONT_FIX are terminal in practice but can be reopened
- Setting the same status again is always allowed (no-op)
- Provides clear error messages for blocked transitions
"""
import logging

from .errors import InvalidTransition
from .models import IssueStatus

logger = logging.getLogger("issuetrack-core.state_machine")


# Issue state machine transition matrix
# Maps current status → list of allowed next statuses (no-op excluded)
ALLOWED_STATUS_TRANSITIONS: dict[IssueStatus, list[IssueStatus]] = {
    IssueStatus.NEW: [
        IssueStatus.ASSIGNED,       # Forward: someone picked it up
        IssueStatus.IN_PROGRESS,    # Forward: work started directly
        IssueStatus.CLOSED,         # Terminal: nothing to do
        IssueStatus.WONT_FIX,       # Terminal: rejected
    ],
    IssueStatus.ASSIGNED: [
        IssueStatus.IN_PROGRESS,    # Forward: work started
        IssueStatus.PENDING,        # Waiting on client or third party
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    ],
    IssueStatus.IN_PROGRESS: [
        IssueStatus.PENDING,
        IssueStatus.NEEDS_REVIEW,   # Forward: fix ready for review
        IssueStatus.FIXED,
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    ],
    IssueStatus.PENDING: [
        IssueStatus.IN_PROGRESS,    # Back: unblocked
        IssueStatus.NEEDS_REVIEW,
        IssueStatus.FIXED,
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    ],
    IssueStatus.NEEDS_REVIEW: [
        IssueStatus.IN_PROGRESS,    # Back: review found problems
        IssueStatus.FIXED,
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    ],
    IssueStatus.FIXED: [
        IssueStatus.NEEDS_REVIEW,
        IssueStatus.CLOSED,
        IssueStatus.IN_PROGRESS,    # Back: the fix didn't actually work
    ],
    IssueStatus.CLOSED: [
        IssueStatus.IN_PROGRESS,    # Reopen
    ],
    IssueStatus.WONT_FIX: [
        IssueStatus.IN_PROGRESS,    # Reopen: requirements changed
    ],
}

_missing = set(IssueStatus) - set(ALLOWED_STATUS_TRANSITIONS)
if _missing:
    raise RuntimeError(
        f"Transition matrix is missing statuses: {', '.join(sorted(s.value for s in _missing))}"
    )
del _missing


# Statuses that still count as open work (used for due-soon reminders)
ACTIVE_STATUSES: list[IssueStatus] = [
    IssueStatus.NEW,
    IssueStatus.ASSIGNED,
    IssueStatus.IN_PROGRESS,
    IssueStatus.PENDING,
    IssueStatus.NEEDS_REVIEW,
]


def is_valid_status_transition(
    current_status: IssueStatus,
    new_status: IssueStatus
) -> bool:
    """
    Check if a status transition is valid.

    Args:
        current_status: Current issue status
        new_status: Requested new issue status

    Returns:
        True if transition is allowed, False otherwise
    """
    current_status = IssueStatus(current_status)
    new_status = IssueStatus(new_status)

    # Setting the same status is always valid
    if current_status == new_status:
        return True

    return new_status in ALLOWED_STATUS_TRANSITIONS[current_status]


def validate_status_transition(
    current_status: IssueStatus,
    new_status: IssueStatus
) -> None:
    """
    Validate a status transition and raise exception if invalid.

    Args:
        current_status: Current issue status
        new_status: Requested new issue status

    Raises:
        InvalidTransition: If the transition is not allowed
    """
    current_status = IssueStatus(current_status)
    new_status = IssueStatus(new_status)

    if current_status == new_status:
        logger.debug(f"No-op transition: {current_status.value} → {new_status.value}")
        return

    if not is_valid_status_transition(current_status, new_status):
        allowed_transitions = get_allowed_next_statuses(current_status)
        allowed_names = [s.value for s in allowed_transitions]

        error_msg = (
            f"Invalid status transition from {current_status.value} to {new_status.value}. "
            f"From {current_status.value}, you can only transition to: {', '.join(allowed_names)}."
        )

        # Add helpful guidance based on the attempted transition
        if current_status in (IssueStatus.CLOSED, IssueStatus.WONT_FIX):
            error_msg += " Reopen the issue by moving it to IN_PROGRESS first."
        elif new_status == IssueStatus.NEW:
            error_msg += " Issues cannot be returned to NEW once triage has started."
        elif current_status == IssueStatus.NEW and new_status in (IssueStatus.FIXED, IssueStatus.NEEDS_REVIEW):
            error_msg += " Work on the issue must start before it can be reviewed or fixed."

        logger.warning(f"Blocked transition: {error_msg}")
        raise InvalidTransition(
            message=error_msg,
            current_status=current_status,
            requested_status=new_status,
            allowed_transitions=allowed_transitions
        )

    logger.debug(f"Valid transition: {current_status.value} → {new_status.value}")


def get_allowed_next_statuses(current_status: IssueStatus) -> list[IssueStatus]:
    """
    Get list of allowed transitions from current status.

    Returns a copy, so callers may mutate the result freely.
    """
    return list(ALLOWED_STATUS_TRANSITIONS[IssueStatus(current_status)])


# Status sort order for list queries
# Lower number = higher priority (shown first)
STATUS_SORT_ORDER: dict[IssueStatus, int] = {
    IssueStatus.IN_PROGRESS: 1,   # Actively working
    IssueStatus.NEEDS_REVIEW: 2,  # Waiting on a reviewer
    IssueStatus.ASSIGNED: 3,
    IssueStatus.NEW: 4,           # Needs triage
    IssueStatus.PENDING: 5,       # Blocked on someone else
    IssueStatus.FIXED: 6,
    IssueStatus.CLOSED: 7,        # Done (usually excluded from lists)
    IssueStatus.WONT_FIX: 8,
}
