"""Tests for role predicates and the authorization rule table."""
from uuid import uuid4

import pytest

from conftest import session_for
from issuetrack_core.authorization import (
    AUTHORIZATION_RULES,
    Action,
    ResourceType,
    Session,
    SessionUser,
    check_authorization,
    check_role,
    get_rule,
    is_account_manager,
    is_admin,
    is_assigned,
    is_authorized,
    is_client,
    is_developer,
    is_owner,
)
from issuetrack_core.errors import Forbidden, Unauthenticated
from issuetrack_core.models import Role

USER_ID = "00000000-0000-0000-0000-000000000001"
OTHER_ID = "00000000-0000-0000-0000-000000000002"


class TestRolePredicates:
    """Test the role and ownership predicates."""

    def test_predicates_match_role(self):
        """Test that each predicate is true only for its role."""
        assert is_admin(session_for(Role.ADMIN))
        assert is_account_manager(session_for(Role.ACCOUNT_MANAGER))
        assert is_developer(session_for(Role.DEVELOPER))
        assert is_client(session_for(Role.CLIENT))

        assert not is_admin(session_for(Role.DEVELOPER))
        assert not is_developer(session_for(Role.ADMIN))
        assert not is_client(session_for(Role.USER))

    def test_missing_session_is_false(self):
        """Test that absent sessions, users or roles satisfy nothing."""
        no_user = Session(user=None)
        no_role = Session(user=SessionUser(id=USER_ID, role=None))

        for session in (None, no_user, no_role):
            assert not is_admin(session)
            assert not check_role(session, *Role)
            assert not is_owner(session, USER_ID)
            assert not is_assigned(session, USER_ID)

    def test_check_role_any_of(self):
        """Test that check_role accepts any of the listed roles."""
        session = session_for(Role.DEVELOPER)
        assert check_role(session, Role.ADMIN, Role.DEVELOPER)
        assert not check_role(session, Role.ADMIN, Role.ACCOUNT_MANAGER)

    def test_is_owner_compares_ids(self):
        """Test ownership by id, tolerant of UUID vs string."""
        user_id = uuid4()
        session = session_for(Role.USER, user_id=user_id)

        assert is_owner(session, user_id)
        assert is_owner(session, str(user_id))
        assert not is_owner(session, uuid4())
        assert not is_owner(session, None)

    def test_is_assigned_requires_assignee(self):
        """Test that an unassigned issue is never 'assigned' to anyone."""
        session = session_for(Role.USER, user_id=USER_ID)
        assert is_assigned(session, USER_ID)
        assert not is_assigned(session, None)
        assert not is_assigned(session, "")
        assert not is_assigned(session, OTHER_ID)


class TestIssueRules:
    """Test the issue rules of the authorization table."""

    def test_view_and_update(self):
        """Test that staff, the reporter and the assignee can view and update."""
        owned = {"reported_by_id": USER_ID, "assigned_to_id": None}
        assigned = {"reported_by_id": OTHER_ID, "assigned_to_id": USER_ID}
        foreign = {"reported_by_id": OTHER_ID, "assigned_to_id": None}

        for action in ("view", "update"):
            assert is_authorized(session_for(Role.ADMIN), "issue", action, foreign)
            assert is_authorized(session_for(Role.DEVELOPER), "issue", action, foreign)
            assert is_authorized(session_for(Role.USER, USER_ID), "issue", action, owned)
            assert is_authorized(session_for(Role.USER, USER_ID), "issue", action, assigned)
            assert not is_authorized(session_for(Role.USER, USER_ID), "issue", action, foreign)
            assert not is_authorized(session_for(Role.ACCOUNT_MANAGER, USER_ID), "issue", action, foreign)

    def test_update_status_ignores_ownership(self):
        """Test that only ADMIN, DEVELOPER and ACCOUNT_MANAGER may change status."""
        owned_and_assigned = {"reported_by_id": USER_ID, "assigned_to_id": USER_ID}

        for role in (Role.ADMIN, Role.DEVELOPER, Role.ACCOUNT_MANAGER):
            assert is_authorized(session_for(role), "issue", "updateStatus", {})

        for role in (Role.USER, Role.CLIENT):
            assert not is_authorized(session_for(role, USER_ID), "issue", "updateStatus", owned_and_assigned)

    def test_delete(self):
        """Test that staff and the reporter can delete, but not the assignee."""
        assert is_authorized(session_for(Role.ADMIN), "issue", "delete", {})
        assert is_authorized(session_for(Role.DEVELOPER), "issue", "delete", {})
        assert is_authorized(
            session_for(Role.USER, USER_ID), "issue", "delete", {"reported_by_id": USER_ID}
        )
        assert not is_authorized(
            session_for(Role.USER, USER_ID), "issue", "delete",
            {"reported_by_id": OTHER_ID, "assigned_to_id": USER_ID},
        )

    def test_create_and_list(self):
        """Test that any authenticated user can create and list issues."""
        for role in Role:
            assert is_authorized(session_for(role), "issue", "create")
            assert is_authorized(session_for(role), "issue", "list")

        # A session with a user but no role is still authenticated
        roleless = Session(user=SessionUser(id=USER_ID, role=None))
        assert is_authorized(roleless, "issue", "create")


class TestClientAndUserRules:
    """Test the client and user rules of the authorization table."""

    @pytest.mark.parametrize("role,view,write,delete", [
        (Role.ADMIN, True, True, True),
        (Role.ACCOUNT_MANAGER, True, True, False),
        (Role.DEVELOPER, True, False, False),
        (Role.USER, False, False, False),
        (Role.CLIENT, False, False, False),
    ])
    def test_client_matrix(self, role, view, write, delete):
        """Test client permissions for each role."""
        session = session_for(role)
        assert is_authorized(session, "client", "view") == view
        assert is_authorized(session, "client", "list") == view
        assert is_authorized(session, "client", "create") == write
        assert is_authorized(session, "client", "update") == write
        assert is_authorized(session, "client", "delete") == delete

    def test_user_management_is_admin_only(self):
        """Test that only admins view, create, list and delete users."""
        for action in ("view", "create", "list", "delete"):
            assert is_authorized(session_for(Role.ADMIN), "user", action)
            for role in (Role.ACCOUNT_MANAGER, Role.DEVELOPER, Role.USER, Role.CLIENT):
                assert not is_authorized(session_for(role), "user", action)

    def test_user_can_update_self(self):
        """Test that a user may update their own record but nobody else's."""
        session = session_for(Role.USER, USER_ID)
        assert is_authorized(session, "user", "update", {"user_id": USER_ID})
        assert not is_authorized(session, "user", "update", {"user_id": OTHER_ID})
        assert is_authorized(session_for(Role.ADMIN), "user", "update", {"user_id": OTHER_ID})


class TestAuthorizationGate:
    """Test is_authorized and check_authorization."""

    def test_no_session_denies(self):
        """Test that is_authorized returns False without a session."""
        assert not is_authorized(None, "issue", "list")
        assert not is_authorized(Session(user=None), "issue", "list")

    def test_unknown_pair_denies(self):
        """Test that unregistered resource types and actions are denied, even for admins."""
        admin = session_for(Role.ADMIN)
        assert not is_authorized(admin, "comment", "view")
        assert not is_authorized(admin, "issue", "archive")
        assert not is_authorized(admin, "issue", "updatestatus")
        assert not is_authorized(admin, ResourceType.USER, Action.UPDATE_STATUS)
        assert get_rule("issue", "archive") is None

    def test_every_registered_rule_is_reachable(self):
        """Test that enum members and strings reach the same rules."""
        for resource_type, rules in AUTHORIZATION_RULES.items():
            for action, rule in rules.items():
                assert get_rule(resource_type, action) is rule
                assert get_rule(resource_type.value, action.value) is rule

    def test_check_authorization_unauthenticated(self):
        """Test that a missing session yields a 401 error value."""
        error = check_authorization(None, "issue", "view")
        assert isinstance(error, Unauthenticated)
        assert error.status_code == 401
        assert error.message == "Unauthorized: Authentication required"

    def test_check_authorization_forbidden(self):
        """Test that a denied rule yields a 403 error value with a readable message."""
        error = check_authorization(session_for(Role.USER), "client", "delete")
        assert isinstance(error, Forbidden)
        assert error.status_code == 403
        assert error.message == "You don't have permission to delete this client"
        assert error.resource_type == "client"
        assert error.action == "delete"

    def test_check_authorization_allowed(self):
        """Test that an allowed call yields None."""
        assert check_authorization(session_for(Role.ADMIN), "client", "delete") is None
        assert check_authorization(session_for(Role.DEVELOPER), ResourceType.ISSUE, Action.UPDATE_STATUS) is None
