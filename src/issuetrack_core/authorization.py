"""Role-based authorization for issues, clients and users.

Every mutating or listing operation calls ``check_authorization`` before it
touches the database. Rules are looked up in ``AUTHORIZATION_RULES`` by
(resource type, action); a missing rule denies. Nothing in this module raises
for an expected denial: predicates return booleans and the gate returns a
structured error value.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union
from uuid import UUID

from .errors import ApiError, Forbidden, Unauthenticated
from .models import Role

logger = logging.getLogger("issuetrack-core.authorization")


@dataclass(frozen=True)
class SessionUser:
    """The authenticated user as seen by a single request."""

    id: Optional[UUID]
    role: Optional[Role]
    email: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class Session:
    """Request-scoped session produced by the identity dependency."""

    user: Optional[SessionUser]


class ResourceType(str, enum.Enum):
    """Types of resources that can be authorized."""

    ISSUE = "issue"
    CLIENT = "client"
    USER = "user"


class Action(str, enum.Enum):
    """Actions that can be performed on resources."""

    VIEW = "view"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    LIST = "list"
    UPDATE_STATUS = "updateStatus"


# =============================================================================
# Role predicates
# =============================================================================


def _user(session: Optional[Session]) -> Optional[SessionUser]:
    # A user without a role satisfies no predicate
    if session is None or session.user is None or session.user.role is None:
        return None
    return session.user


def check_role(session: Optional[Session], *roles: Role) -> bool:
    """True if the session user holds one of ``roles``."""
    user = _user(session)
    if user is None:
        return False
    return user.role in roles


def is_admin(session: Optional[Session]) -> bool:
    return check_role(session, Role.ADMIN)


def is_account_manager(session: Optional[Session]) -> bool:
    return check_role(session, Role.ACCOUNT_MANAGER)


def is_developer(session: Optional[Session]) -> bool:
    return check_role(session, Role.DEVELOPER)


def is_client(session: Optional[Session]) -> bool:
    return check_role(session, Role.CLIENT)


def is_owner(session: Optional[Session], owner_id: Optional[Union[UUID, str]]) -> bool:
    """True iff the session user's id equals ``owner_id``."""
    user = _user(session)
    if user is None or user.id is None or owner_id is None:
        return False
    return str(user.id) == str(owner_id)


def is_assigned(session: Optional[Session], assigned_to_id: Optional[Union[UUID, str]]) -> bool:
    """True iff ``assigned_to_id`` is set and equals the session user's id."""
    if not assigned_to_id:
        return False
    return is_owner(session, assigned_to_id)


def is_authenticated(session: Optional[Session]) -> bool:
    return session is not None and session.user is not None


# =============================================================================
# Authorization rules
# =============================================================================

Rule = Callable[[Optional[Session], dict[str, Any]], bool]


def _issue_view_or_update(session: Optional[Session], data: dict[str, Any]) -> bool:
    return (
        check_role(session, Role.ADMIN, Role.DEVELOPER)
        or is_owner(session, data.get("reported_by_id"))
        or is_assigned(session, data.get("assigned_to_id"))
    )


def _issue_update_status(session: Optional[Session], data: dict[str, Any]) -> bool:
    # Ownership and assignment do not grant this
    return check_role(session, Role.ADMIN, Role.DEVELOPER, Role.ACCOUNT_MANAGER)


def _issue_delete(session: Optional[Session], data: dict[str, Any]) -> bool:
    return (
        check_role(session, Role.ADMIN, Role.DEVELOPER)
        or is_owner(session, data.get("reported_by_id"))
    )


def _any_authenticated(session: Optional[Session], data: dict[str, Any]) -> bool:
    return is_authenticated(session)


def _client_read(session: Optional[Session], data: dict[str, Any]) -> bool:
    return check_role(session, Role.ADMIN, Role.ACCOUNT_MANAGER, Role.DEVELOPER)


def _client_write(session: Optional[Session], data: dict[str, Any]) -> bool:
    return check_role(session, Role.ADMIN, Role.ACCOUNT_MANAGER)


def _admin_only(session: Optional[Session], data: dict[str, Any]) -> bool:
    return is_admin(session)


def _user_update(session: Optional[Session], data: dict[str, Any]) -> bool:
    # Users can update their own record; admins can update anyone
    return is_admin(session) or is_owner(session, data.get("user_id"))


AUTHORIZATION_RULES: dict[ResourceType, dict[Action, Rule]] = {
    ResourceType.ISSUE: {
        Action.VIEW: _issue_view_or_update,
        Action.CREATE: _any_authenticated,
        Action.UPDATE: _issue_view_or_update,
        Action.UPDATE_STATUS: _issue_update_status,
        Action.DELETE: _issue_delete,
        Action.LIST: _any_authenticated,
    },
    ResourceType.CLIENT: {
        Action.VIEW: _client_read,
        Action.LIST: _client_read,
        Action.CREATE: _client_write,
        Action.UPDATE: _client_write,
        Action.DELETE: _admin_only,
    },
    ResourceType.USER: {
        Action.VIEW: _admin_only,
        Action.CREATE: _admin_only,
        Action.LIST: _admin_only,
        Action.DELETE: _admin_only,
        Action.UPDATE: _user_update,
    },
}


def get_rule(resource_type: Union[ResourceType, str], action: Union[Action, str]) -> Optional[Rule]:
    """Look up the rule for (resource_type, action); None if unregistered."""
    try:
        resource_type = ResourceType(resource_type)
        action = Action(action)
    except ValueError:
        return None
    return AUTHORIZATION_RULES.get(resource_type, {}).get(action)


def is_authorized(
    session: Optional[Session],
    resource_type: Union[ResourceType, str],
    action: Union[Action, str],
    resource_data: Optional[dict[str, Any]] = None,
) -> bool:
    """
    Check if the session user may perform ``action`` on a resource.

    Args:
        session: The caller's session (may be None)
        resource_type: "issue", "client" or "user"
        action: "view", "create", "update", "delete", "list" or "updateStatus"
        resource_data: Ownership data for the resource, e.g.
            {"reported_by_id": ..., "assigned_to_id": ...} for an issue

    Returns:
        True if authorized. No session, or no registered rule, means False.
    """
    if not is_authenticated(session):
        return False

    rule = get_rule(resource_type, action)
    if rule is None:
        logger.warning(f"No authorization rule for {resource_type}.{action}; denying")
        return False

    return bool(rule(session, resource_data or {}))


def check_authorization(
    session: Optional[Session],
    resource_type: Union[ResourceType, str],
    action: Union[Action, str],
    resource_data: Optional[dict[str, Any]] = None,
) -> Optional[ApiError]:
    """
    Check authorization and return an error value if the caller may not proceed.

    Returns:
        Unauthenticated if there is no session, Forbidden if the rule denies,
        None if the caller is authorized.
    """
    if not is_authenticated(session):
        return Unauthenticated()

    if not is_authorized(session, resource_type, action, resource_data):
        resource_name = getattr(resource_type, "value", resource_type)
        action_name = getattr(action, "value", action)
        logger.info(
            f"Denied {action_name} on {resource_name} for user {session.user.id} "
            f"(role={getattr(session.user.role, 'value', session.user.role)})"
        )
        return Forbidden(
            f"You don't have permission to {action_name} this {resource_name}",
            resource_type=resource_name,
            action=action_name,
        )

    return None
