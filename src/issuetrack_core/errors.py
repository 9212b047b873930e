"""Structured error taxonomy shared by the core and the API layer.

Core functions return (authorization) or raise (status transitions) these
values for expected denials. Routers turn them into HTTP responses with
``to_http_exception``.
"""
from typing import Optional

from fastapi import HTTPException


class ApiError(Exception):
    """Base class for expected, client-visible failures."""

    status_code: int = 400
    code: str = "bad_request"
    default_message: str = "Bad request"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class Unauthenticated(ApiError):
    """No session: the caller must log in."""

    status_code = 401
    code = "unauthenticated"
    default_message = "Unauthorized: Authentication required"


class Forbidden(ApiError):
    """Authenticated, but the policy denies the action."""

    status_code = 403
    code = "forbidden"
    default_message = "Forbidden: Insufficient permissions"

    def __init__(
        self,
        message: Optional[str] = None,
        resource_type: Optional[str] = None,
        action: Optional[str] = None,
    ):
        super().__init__(message)
        self.resource_type = resource_type
        self.action = action


class NotFound(ApiError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class Conflict(ApiError):
    status_code = 409
    code = "conflict"
    default_message = "Resource conflict"


class RateLimited(ApiError):
    status_code = 429
    code = "rate_limited"
    default_message = "Rate limit exceeded"


class InvalidTransition(ApiError):
    """Raised when an issue status change is not an edge of the transition graph."""

    status_code = 400
    code = "invalid_transition"
    default_message = "Invalid status transition"

    def __init__(
        self,
        message: str,
        current_status,
        requested_status,
        allowed_transitions: list,
    ):
        super().__init__(message)
        self.current_status = current_status
        self.requested_status = requested_status
        self.allowed_transitions = allowed_transitions
