"""Configuration package.

``get_config()`` is the single source of truth for settings; it is built
from environment variables for the active profile.
"""

import os

from .base import DEFAULT_SECRET_KEY
from .runtime import get_migration_config, get_runtime_config
from .schema import AppConfig, MigrationConfig, RuntimeConfig

_config_name = "default"


def set_config_name(name: str | None) -> None:
    global _config_name
    _config_name = name or "default"


def get_config() -> AppConfig:
    """Build the application config for the active profile."""
    return AppConfig(
        runtime=get_runtime_config(_config_name),
        migration=get_migration_config(),
        secret_key=os.environ.get("SECRET_KEY") or DEFAULT_SECRET_KEY,
    )


__all__ = [
    "AppConfig",
    "MigrationConfig",
    "RuntimeConfig",
    "get_config",
    "set_config_name",
]
