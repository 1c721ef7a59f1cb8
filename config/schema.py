"""Configuration schema dataclasses.

Minimal dataclasses for runtime and migration configuration.
"""

from dataclasses import dataclass
from typing import Optional

from .base import (
    DEFAULT_FIREBASE_AUTH_URL,
    DEFAULT_JWT_AUDIENCE,
    DEFAULT_LEGACY_HTTP_TIMEOUT,
    DEFAULT_SECRET_KEY,
)


@dataclass
class RuntimeConfig:
    """Runtime configuration - environment-driven settings."""

    # Database
    db_uri: str
    db_read_only: bool = False

    # Supabase-issued access tokens
    jwt_secret_key: Optional[str] = None
    jwt_audience: str = DEFAULT_JWT_AUDIENCE

    # CORS
    cors_allowed_origins: str = "*"

    def __post_init__(self):
        """Validate after initialization."""
        if not self.db_uri:
            raise ValueError("DATABASE_URL must not be empty")


@dataclass
class MigrationConfig:
    """Legacy (Firebase) and target (Supabase) endpoints for data migration."""

    firebase_url: str
    firebase_api_key: Optional[str] = None
    firebase_auth_url: str = DEFAULT_FIREBASE_AUTH_URL
    supabase_url: Optional[str] = None
    supabase_service_role_key: Optional[str] = None

    # Used for legacy users that have no stored password. When unset each
    # such user receives a random password and must reset it.
    placeholder_password: Optional[str] = None

    http_timeout: float = DEFAULT_LEGACY_HTTP_TIMEOUT

    def __post_init__(self):
        """Validate after initialization."""
        self.firebase_url = (self.firebase_url or "").rstrip("/")
        if not self.firebase_url:
            raise ValueError("FIREBASE_URL must not be empty")
        if self.http_timeout <= 0:
            raise ValueError("LEGACY_HTTP_TIMEOUT must be > 0")
        if self.placeholder_password is not None and len(self.placeholder_password) < 6:
            raise ValueError("MIGRATION_PLACEHOLDER_PASSWORD must be at least 6 characters")

    @property
    def service_role_configured(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_role_key)


@dataclass
class AppConfig:
    """Application configuration - composition of runtime and migration configs."""

    runtime: RuntimeConfig
    migration: MigrationConfig

    # Flask-specific settings
    secret_key: str = DEFAULT_SECRET_KEY


__all__ = ["RuntimeConfig", "MigrationConfig", "AppConfig"]
