"""Request-scoped dependencies: identity, authorization and rate limits."""
import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session as DbSession

from .. import models
from ..authorization import Session, SessionUser, check_authorization
from ..config import get_settings
from ..database import get_db
from ..errors import ApiError, RateLimited, Unauthenticated
from ..rate_limit import RateLimiterRegistry
from ..storage import ObjectStore

logger = logging.getLogger("issuetrack-core.dependencies")


def get_session(request: Request, db: DbSession = Depends(get_db)) -> Optional[Session]:
    """
    Resolve the caller from the identity header set by the upstream provider.

    Returns:
        Session for a known user, or None when the header is missing,
        malformed or names no user
    """
    header = get_settings().auth_user_header
    raw_user_id = request.headers.get(header)
    if not raw_user_id:
        return None

    try:
        user_id = UUID(raw_user_id)
    except ValueError:
        logger.warning(f"Ignoring malformed {header} header")
        return None

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        logger.info(f"Unknown user {user_id} in {header} header")
        return None

    return Session(user=SessionUser(id=user.id, role=user.role, email=user.email, name=user.name))


def require_session(session: Optional[Session] = Depends(get_session)) -> Session:
    """Like ``get_session`` but rejects anonymous callers with 401."""
    if session is None:
        raise Unauthenticated().to_http_exception()
    return session


def get_current_user(
    session: Session = Depends(require_session),
    db: DbSession = Depends(get_db),
) -> models.User:
    user = db.query(models.User).filter(models.User.id == session.user.id).first()
    if not user:
        raise Unauthenticated().to_http_exception()
    return user


def authorize(
    session: Optional[Session],
    resource_type: str,
    action: str,
    resource_data: Optional[dict[str, Any]] = None,
) -> None:
    """Raise the HTTP form of ``check_authorization``'s error, if any."""
    error: Optional[ApiError] = check_authorization(session, resource_type, action, resource_data)
    if error is not None:
        raise error.to_http_exception()


def issue_context(issue: models.Issue) -> dict[str, Any]:
    """Ownership data the issue rules read."""
    return {
        "reported_by_id": issue.reported_by_id,
        "assigned_to_id": issue.assigned_to_id,
    }


def not_found(resource: str, identifier) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{resource} not found: {identifier}",
    )


def get_rate_limiters(request: Request) -> RateLimiterRegistry:
    return request.app.state.rate_limiters


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


def limit_issue_submission(
    request: Request,
    session: Session = Depends(require_session),
    limiters: RateLimiterRegistry = Depends(get_rate_limiters),
) -> None:
    """Reject a caller who submits issues faster than the configured limit."""
    if not limiters.issue_submission.hit(f"user:{session.user.id}"):
        raise RateLimited("Too many issues submitted. Please wait a minute and try again.").to_http_exception()
