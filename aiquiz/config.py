"""
Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # ==========================================================================
    # Environment
    # ==========================================================================

    environment: str = "development"
    debug: bool = False
    log_level: str = "INFO"

    # ==========================================================================
    # API Server
    # ==========================================================================

    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: str = "http://localhost:3000"

    # Used to build links in emails (accept invitation, reset password)
    app_base_url: str = "http://localhost:3000"

    # ==========================================================================
    # Authentication
    # ==========================================================================

    jwt_secret_key: str = "dev-jwt-secret-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expire_days: int = 7
    download_token_expire_minutes: int = 5
    auth_cookie_name: str = "jwt_token"

    invitation_token_ttl_days: int = 7
    reset_token_ttl_minutes: int = 60

    # Bootstrap admin (see `aiquiz seed-admin`)
    super_admin_email: str = ""
    super_admin_password: str = ""
    super_admin_name: str = "Administrador"
    super_admin_faculty: str = ""
    super_admin_department: str = ""

    # ==========================================================================
    # Email
    # ==========================================================================

    # "console" logs messages, "ses" delivers through AWS SES
    email_backend: str = "console"
    aws_region: str = "eu-west-1"
    aws_access_key_id: str = ""
    aws_secret_access_key: str = ""
    aws_ses_from_email: str = ""

    # ==========================================================================
    # Storage
    # ==========================================================================

    content_dir: str = "./data/content"

    # "sqlite" persists users, subjects and files in METADATA_PATH and is
    # shared with the CLI; "memory" is per-process (tests, demos)
    metadata_backend: str = "sqlite"
    metadata_path: str = "./data/aiquiz.db"

    # ==========================================================================
    # Optional Services
    # ==========================================================================

    sentry_dsn: str = ""

    # ==========================================================================
    # Helpers
    # ==========================================================================

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def session_max_age(self) -> int:
        """Session lifetime in seconds (JWT expiry and cookie max-age)."""
        return self.jwt_expire_days * 24 * 60 * 60


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Route all module loggers to stderr at LOG_LEVEL."""
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("aiquiz").setLevel(level)
