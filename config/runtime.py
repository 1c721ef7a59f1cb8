"""Runtime configuration - environment-driven settings.

Reads environment variables and applies defaults for production runtime.
"""

import os
from pathlib import Path

from .base import (
    DEFAULT_DB_URI,
    DEFAULT_FIREBASE_AUTH_URL,
    DEFAULT_FIREBASE_URL,
    DEFAULT_JWT_AUDIENCE,
    DEFAULT_LEGACY_HTTP_TIMEOUT,
    DEFAULT_CORS_ALLOWED_ORIGINS,
    DEFAULT_CORS_ALLOWED_ORIGINS_PROD,
)
from .schema import MigrationConfig, RuntimeConfig


def _env_flag(name, default=False):
    """Read a boolean environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes", "on")


def _env_float(name, default):
    """Read a float environment variable."""
    value = os.environ.get(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def _env_str(name):
    """Read a string environment variable, treating blank as unset."""
    value = (os.environ.get(name) or "").strip()
    return value or None


def _resolve_db_uri(db_env: str | None, default_uri: str) -> str:
    """Resolve DB URI from env value or fallback to default."""
    if not db_env:
        return default_uri
    if "://" in db_env:
        if db_env.startswith("postgres://"):
            return db_env.replace("postgres://", "postgresql+psycopg://", 1)
        if db_env.startswith("postgresql://"):
            return db_env.replace("postgresql://", "postgresql+psycopg://", 1)
        return db_env
    return _sqlite_uri(Path(db_env))


def get_runtime_config(flask_config_name="default") -> RuntimeConfig:
    """
    Build runtime configuration from environment variables.

    Args:
        flask_config_name: Flask config profile name (default/development/production)

    Returns:
        RuntimeConfig instance
    """
    db_env = os.environ.get("DATABASE_URL")
    if flask_config_name == "production":
        if not db_env:
            raise RuntimeError("DATABASE_URL is required in production.")
        default_cors_origins = DEFAULT_CORS_ALLOWED_ORIGINS_PROD
    else:
        default_cors_origins = DEFAULT_CORS_ALLOWED_ORIGINS

    return RuntimeConfig(
        db_uri=_resolve_db_uri(db_env, DEFAULT_DB_URI),
        db_read_only=_env_flag("DB_READ_ONLY", default=False),
        jwt_secret_key=_env_str("SUPABASE_JWT_SECRET"),
        jwt_audience=os.environ.get("SUPABASE_JWT_AUDIENCE", DEFAULT_JWT_AUDIENCE),
        cors_allowed_origins=os.environ.get(
            "CORS_ALLOWED_ORIGINS", default_cors_origins
        ),
    )


def get_migration_config() -> MigrationConfig:
    """Build legacy/target endpoint configuration from environment variables."""
    return MigrationConfig(
        firebase_url=os.environ.get("FIREBASE_URL", DEFAULT_FIREBASE_URL),
        firebase_api_key=_env_str("FIREBASE_API_KEY"),
        firebase_auth_url=os.environ.get(
            "FIREBASE_AUTH_URL", DEFAULT_FIREBASE_AUTH_URL
        ),
        supabase_url=_env_str("SUPABASE_URL"),
        supabase_service_role_key=_env_str("SUPABASE_SERVICE_ROLE_KEY"),
        placeholder_password=_env_str("MIGRATION_PLACEHOLDER_PASSWORD"),
        http_timeout=_env_float(
            "LEGACY_HTTP_TIMEOUT", default=DEFAULT_LEGACY_HTTP_TIMEOUT
        ),
    )


def _sqlite_uri(path: Path) -> str:
    """Convert a Path to SQLite URI."""
    return f"sqlite:///{path.resolve().as_posix()}"


__all__ = ["get_runtime_config", "get_migration_config", "_env_flag", "_env_float"]
