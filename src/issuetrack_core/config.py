"""Application settings loaded from environment variables."""
import os
from functools import lru_cache


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings:
    """Runtime configuration. Every value can be overridden from the environment."""

    def __init__(self) -> None:
        self.database_url: str = os.getenv(
            "DATABASE_URL", "postgresql://localhost:5432/issuetrack"
        )
        self.cors_origins: list[str] = _split_csv(
            os.getenv("CORS_ORIGINS", "http://localhost:3000")
        )

        # Header set by the upstream identity provider / proxy
        self.auth_user_header: str = os.getenv("AUTH_USER_HEADER", "X-User-Id")

        # Attachments
        self.upload_dir: str = os.getenv("UPLOAD_DIR", "./uploads")
        self.upload_base_url: str = os.getenv("UPLOAD_BASE_URL", "/uploads")
        self.max_upload_bytes: int = int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024)))

        # Rate limits (requests per window, per caller)
        self.api_rate_limit: int = int(os.getenv("API_RATE_LIMIT", "100"))
        self.api_rate_window_seconds: float = float(os.getenv("API_RATE_WINDOW_SECONDS", "60"))
        self.issue_rate_limit: int = int(os.getenv("ISSUE_RATE_LIMIT", "3"))
        self.issue_rate_window_seconds: float = float(os.getenv("ISSUE_RATE_WINDOW_SECONDS", "60"))

        self.log_level: str = os.getenv("LOG_LEVEL", "INFO")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
