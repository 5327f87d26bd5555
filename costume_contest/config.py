"""Application configuration management."""
from pydantic import model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from sqlalchemy.engine.url import make_url, URL
from typing import Optional
import logging

SQLITE_LOCAL_URL = "sqlite+aiosqlite:///./costume_contest.db"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str = SQLITE_LOCAL_URL
    db_pool_size: int = 5
    db_max_overflow: int = 10

    # Application
    frontend_url: str = "http://localhost:3000"
    environment: str = "development"
    log_dir: str = "logs"

    # Admin access (empty means unconfigured, every admin call is refused)
    admin_password: str = ""

    # Image storage
    upload_dir: str = "uploads"
    public_base_url: str = "http://localhost:8000/uploads"
    max_upload_bytes: int = 5 * 1024 * 1024
    allowed_image_extensions: set[str] = {"jpg", "jpeg", "png", "gif", "webp", "heic"}

    # Contest rules
    finalist_count: int = 3
    require_first_round_for_finals: bool = False
    voting_start_time: Optional[str] = None  # ISO-8601, advisory countdown only

    # Demo data
    mock_phone_prefix: str = "0550000"

    @field_validator("allowed_image_extensions", mode="before")
    @classmethod
    def parse_allowed_extensions(cls, value):
        """Parse comma-separated extensions from environment variables."""
        if value is None:
            return cls.model_fields["allowed_image_extensions"].default
        if isinstance(value, str):
            items = [item.strip().lower().lstrip(".") for item in value.split(",") if item.strip()]
        elif isinstance(value, (list, tuple, set)):
            items = [str(item).strip().lower().lstrip(".") for item in value if str(item).strip()]
        else:
            raise TypeError("allowed_image_extensions must be provided as a string or sequence")
        return set(items)

    @property
    def admin_configured(self) -> bool:
        return bool(self.admin_password)

    @model_validator(mode="after")
    def validate_all_config(self):
        """Validate contest rules and normalize Postgres URLs."""
        logger = logging.getLogger(__name__)

        if self.environment == "production" and not self.admin_password:
            raise ValueError("admin_password must be set in production")

        if self.finalist_count < 1:
            raise ValueError("finalist_count must be at least 1")

        if self.max_upload_bytes < 1:
            raise ValueError("max_upload_bytes must be positive")

        url = self.database_url
        if not url:
            logger.warning("Empty DATABASE_URL, using SQLite fallback")
            self.database_url = SQLITE_LOCAL_URL
            return self

        parsed: Optional[URL] = None
        try:
            parsed = make_url(url)
        except Exception as e:  # pragma: no cover - defensive fallback
            logger.error(f"Failed to parse DATABASE_URL: {e}")
            self.database_url = SQLITE_LOCAL_URL
            return self

        drivername = parsed.drivername
        if drivername.startswith("postgres") and "+asyncpg" not in drivername:
            old_drivername = drivername
            parsed = parsed.set(drivername="postgresql+asyncpg")
            logger.info(f"Driver normalized: {old_drivername} -> {parsed.drivername}")
        self.database_url = parsed.render_as_string(hide_password=False)

        return self

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
