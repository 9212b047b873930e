"""Tests for issue status transition validation."""
import pytest
from issuetrack_core.errors import InvalidTransition
from issuetrack_core.models import IssueStatus
from issuetrack_core.state_machine import (
    ALLOWED_STATUS_TRANSITIONS,
    STATUS_SORT_ORDER,
    get_allowed_next_statuses,
    is_valid_status_transition,
    validate_status_transition,
)


class TestStatusTransitions:
    """Test issue status transition validation."""

    def test_valid_forward_transitions(self):
        """Test that the usual path through triage is allowed."""
        # New → Assigned
        assert is_valid_status_transition(IssueStatus.NEW, IssueStatus.ASSIGNED)
        validate_status_transition(IssueStatus.NEW, IssueStatus.ASSIGNED)  # Should not raise

        # Assigned → In Progress
        assert is_valid_status_transition(IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS)
        validate_status_transition(IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS)

        # In Progress → Needs Review
        assert is_valid_status_transition(IssueStatus.IN_PROGRESS, IssueStatus.NEEDS_REVIEW)
        validate_status_transition(IssueStatus.IN_PROGRESS, IssueStatus.NEEDS_REVIEW)

        # Needs Review → Fixed
        assert is_valid_status_transition(IssueStatus.NEEDS_REVIEW, IssueStatus.FIXED)
        validate_status_transition(IssueStatus.NEEDS_REVIEW, IssueStatus.FIXED)

        # Fixed → Closed
        assert is_valid_status_transition(IssueStatus.FIXED, IssueStatus.CLOSED)
        validate_status_transition(IssueStatus.FIXED, IssueStatus.CLOSED)

    def test_valid_back_transitions(self):
        """Test that reopening and rework transitions are allowed."""
        # Closed → In Progress (reopen)
        assert is_valid_status_transition(IssueStatus.CLOSED, IssueStatus.IN_PROGRESS)

        # Won't Fix → In Progress (requirements changed)
        assert is_valid_status_transition(IssueStatus.WONT_FIX, IssueStatus.IN_PROGRESS)

        # Fixed → In Progress (the fix didn't work)
        assert is_valid_status_transition(IssueStatus.FIXED, IssueStatus.IN_PROGRESS)

        # Needs Review → In Progress (review found problems)
        assert is_valid_status_transition(IssueStatus.NEEDS_REVIEW, IssueStatus.IN_PROGRESS)

    def test_noop_transitions_allowed(self):
        """Test that no-op transitions (same status) are always allowed."""
        for status in IssueStatus:
            assert is_valid_status_transition(status, status)
            validate_status_transition(status, status)  # Should not raise

    def test_known_blocked_transitions(self):
        """Test a few transitions that are not edges of the graph."""
        assert not is_valid_status_transition(IssueStatus.IN_PROGRESS, IssueStatus.NEW)
        assert not is_valid_status_transition(IssueStatus.CLOSED, IssueStatus.FIXED)
        assert not is_valid_status_transition(IssueStatus.NEW, IssueStatus.FIXED)
        assert not is_valid_status_transition(IssueStatus.NEW, IssueStatus.PENDING)

    def test_nothing_returns_to_new(self):
        """Test that no status can move back to NEW."""
        for status in IssueStatus:
            if status != IssueStatus.NEW:
                assert not is_valid_status_transition(status, IssueStatus.NEW)

                with pytest.raises(InvalidTransition) as exc_info:
                    validate_status_transition(status, IssueStatus.NEW)

                assert exc_info.value.status_code == 400

    def test_closed_only_reopens(self):
        """Test that CLOSED and WONT_FIX can only move to IN_PROGRESS."""
        for terminal in (IssueStatus.CLOSED, IssueStatus.WONT_FIX):
            assert get_allowed_next_statuses(terminal) == [IssueStatus.IN_PROGRESS]

            with pytest.raises(InvalidTransition) as exc_info:
                validate_status_transition(terminal, IssueStatus.FIXED)

            assert "reopen" in exc_info.value.message.lower()

    def test_strings_are_accepted(self):
        """Test that raw status strings are coerced."""
        assert is_valid_status_transition("NEW", "ASSIGNED")
        assert not is_valid_status_transition("IN_PROGRESS", "NEW")

    def test_unknown_status_is_rejected(self):
        """Test that a value outside the enum raises rather than passing."""
        with pytest.raises(ValueError):
            is_valid_status_transition("NEW", "DONE")

    def test_get_allowed_transitions(self):
        """Test getting allowed transitions from each state."""
        assert set(get_allowed_next_statuses(IssueStatus.NEW)) == {
            IssueStatus.ASSIGNED,
            IssueStatus.IN_PROGRESS,
            IssueStatus.CLOSED,
            IssueStatus.WONT_FIX,
        }
        assert set(get_allowed_next_statuses(IssueStatus.FIXED)) == {
            IssueStatus.NEEDS_REVIEW,
            IssueStatus.CLOSED,
            IssueStatus.IN_PROGRESS,
        }

    def test_allowed_transitions_is_a_copy(self):
        """Test that mutating the returned list leaves the matrix untouched."""
        allowed = get_allowed_next_statuses(IssueStatus.NEW)
        allowed.append(IssueStatus.FIXED)
        allowed.clear()

        assert len(get_allowed_next_statuses(IssueStatus.NEW)) == 4
        assert IssueStatus.FIXED not in ALLOWED_STATUS_TRANSITIONS[IssueStatus.NEW]

    def test_validity_matches_allowed_list(self):
        """Test that validity is exactly membership in the allowed list, plus no-ops."""
        for current in IssueStatus:
            allowed = get_allowed_next_statuses(current)
            for requested in IssueStatus:
                expected = requested == current or requested in allowed
                assert is_valid_status_transition(current, requested) == expected

    def test_matrix_and_sort_order_cover_every_status(self):
        """Test that every status has an entry in the matrix and a sort position."""
        assert set(ALLOWED_STATUS_TRANSITIONS) == set(IssueStatus)
        assert set(STATUS_SORT_ORDER) == set(IssueStatus)
        for current, targets in ALLOWED_STATUS_TRANSITIONS.items():
            assert current not in targets

    def test_invalid_transition_error_attributes(self):
        """Test that InvalidTransition contains all required attributes."""
        with pytest.raises(InvalidTransition) as exc_info:
            validate_status_transition(IssueStatus.NEW, IssueStatus.FIXED)

        error = exc_info.value
        assert error.current_status == IssueStatus.NEW
        assert error.requested_status == IssueStatus.FIXED
        assert isinstance(error.allowed_transitions, list)
        assert set(error.allowed_transitions) == set(get_allowed_next_statuses(IssueStatus.NEW))
        assert "Invalid status transition from NEW to FIXED" in error.message
        assert "work on the issue must start" in error.message.lower()


EXPECTED_TRANSITIONS = {
    IssueStatus.NEW: {IssueStatus.ASSIGNED, IssueStatus.IN_PROGRESS, IssueStatus.CLOSED, IssueStatus.WONT_FIX},
    IssueStatus.ASSIGNED: {IssueStatus.IN_PROGRESS, IssueStatus.PENDING, IssueStatus.CLOSED, IssueStatus.WONT_FIX},
    IssueStatus.IN_PROGRESS: {
        IssueStatus.PENDING,
        IssueStatus.NEEDS_REVIEW,
        IssueStatus.FIXED,
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    },
    IssueStatus.PENDING: {
        IssueStatus.IN_PROGRESS,
        IssueStatus.NEEDS_REVIEW,
        IssueStatus.FIXED,
        IssueStatus.CLOSED,
        IssueStatus.WONT_FIX,
    },
    IssueStatus.NEEDS_REVIEW: {IssueStatus.IN_PROGRESS, IssueStatus.FIXED, IssueStatus.CLOSED, IssueStatus.WONT_FIX},
    IssueStatus.FIXED: {IssueStatus.NEEDS_REVIEW, IssueStatus.CLOSED, IssueStatus.IN_PROGRESS},
    IssueStatus.CLOSED: {IssueStatus.IN_PROGRESS},
    IssueStatus.WONT_FIX: {IssueStatus.IN_PROGRESS},
}


class TestTransitionTable:
    """Pin every row of the transition matrix to its expected edges."""

    def test_expected_table_covers_every_status(self):
        assert set(EXPECTED_TRANSITIONS) == set(IssueStatus)

    @pytest.mark.parametrize("current", list(EXPECTED_TRANSITIONS))
    def test_allowed_next_statuses_per_state(self, current):
        """Test that each state allows exactly its expected targets, with no duplicates."""
        allowed = get_allowed_next_statuses(current)

        assert set(allowed) == EXPECTED_TRANSITIONS[current]
        assert len(allowed) == len(EXPECTED_TRANSITIONS[current])

    @pytest.mark.parametrize("current", list(EXPECTED_TRANSITIONS))
    def test_validity_per_state(self, current):
        """Test every (current, requested) pair against the expected edges."""
        for requested in IssueStatus:
            expected = requested == current or requested in EXPECTED_TRANSITIONS[current]
            assert is_valid_status_transition(current, requested) == expected
