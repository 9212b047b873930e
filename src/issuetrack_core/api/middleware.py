"""API-wide rate limiting middleware."""
import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from ..config import get_settings

logger = logging.getLogger("issuetrack-core.middleware")

EXEMPT_PATHS = {"/", "/health"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies ``app.state.rate_limiters.api`` to every request."""

    def _get_identifier(self, request: Request) -> str:
        """Get rate limit identifier from request."""
        user_id = request.headers.get(get_settings().auth_user_header)
        if user_id:
            return f"user:{user_id}"

        # Fall back to IP address
        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        limiter = request.app.state.rate_limiters.api
        identifier = self._get_identifier(request)

        if not limiter.hit(identifier):
            retry_after = int(limiter.rule.window_seconds)
            return JSONResponse(
                status_code=429,
                content={
                    "detail": "Rate limit exceeded. Please slow down.",
                    "retry_after": retry_after,
                },
                headers={
                    "Retry-After": str(retry_after),
                    "X-RateLimit-Limit": str(limiter.rule.max_requests),
                    "X-RateLimit-Remaining": "0",
                },
            )

        response = await call_next(request)

        response.headers["X-RateLimit-Limit"] = str(limiter.rule.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(limiter.remaining(identifier))
        return response
