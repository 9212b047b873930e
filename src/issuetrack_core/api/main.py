"""Issue tracker FastAPI application."""
import logging
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from .. import __version__
from ..config import get_settings
from ..rate_limit import RateLimiterRegistry, RateLimitRule
from ..storage import LocalFileStore
from .middleware import RateLimitMiddleware
from .routers import issues, comments, clients, domains, users, notifications, files

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("issuetrack-core")


def create_app() -> FastAPI:
    """Build the application with its own rate limiter state and object store."""
    app = FastAPI(
        title="Issue Tracker API",
        description="Issue tracking and client relationship management",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
    )

    app.state.rate_limiters = RateLimiterRegistry(
        api_rule=RateLimitRule(settings.api_rate_limit, settings.api_rate_window_seconds),
        issue_submission_rule=RateLimitRule(settings.issue_rate_limit, settings.issue_rate_window_seconds),
    )
    app.state.object_store = LocalFileStore(settings.upload_dir, settings.upload_base_url)

    # Absolute upload URLs are served outside the app
    if settings.upload_base_url.startswith("/"):
        Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
        app.mount(
            settings.upload_base_url.rstrip("/"),
            StaticFiles(directory=settings.upload_dir),
            name="uploads",
        )

    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include all routers with /api/v1 prefix
    app.include_router(issues.router, prefix="/api/v1/issues")
    app.include_router(comments.router, prefix="/api/v1")
    app.include_router(clients.router, prefix="/api/v1/clients")
    app.include_router(domains.router, prefix="/api/v1")
    app.include_router(users.router, prefix="/api/v1/users")
    app.include_router(notifications.router, prefix="/api/v1/notifications")
    app.include_router(files.router, prefix="/api/v1/files")

    @app.get("/")
    def root():
        """Root endpoint with server info."""
        return {
            "name": "Issue Tracker API",
            "version": __version__,
            "docs": "/docs",
        }

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "healthy"}

    logger.info("Issue Tracker API configured")
    return app


app = create_app()
