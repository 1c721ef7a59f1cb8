import pytest

from config.runtime import _resolve_db_uri, get_migration_config, get_runtime_config
from config.schema import MigrationConfig


def test_resolve_db_uri_normalizes_postgres_schemes():
    assert (
        _resolve_db_uri("postgres://u:p@localhost:5432/pegasus", "sqlite:///x.db")
        == "postgresql+psycopg://u:p@localhost:5432/pegasus"
    )
    assert (
        _resolve_db_uri("postgresql://u:p@localhost:5432/pegasus", "sqlite:///x.db")
        == "postgresql+psycopg://u:p@localhost:5432/pegasus"
    )
    assert (
        _resolve_db_uri("postgresql+psycopg://u:p@localhost:5432/pegasus", "sqlite:///x.db")
        == "postgresql+psycopg://u:p@localhost:5432/pegasus"
    )


def test_resolve_db_uri_falls_back_to_default():
    assert _resolve_db_uri(None, "sqlite:///default.db") == "sqlite:///default.db"


def test_resolve_db_uri_turns_paths_into_sqlite(tmp_path):
    uri = _resolve_db_uri(str(tmp_path / "pegasus.db"), "sqlite:///default.db")

    assert uri.startswith("sqlite:///")
    assert uri.endswith("/pegasus.db")


def test_production_requires_database_url(monkeypatch):
    monkeypatch.delenv("DATABASE_URL", raising=False)

    with pytest.raises(RuntimeError, match="DATABASE_URL is required"):
        get_runtime_config("production")


def test_runtime_config_reads_environment(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgres://u:p@db:5432/pegasus")
    monkeypatch.setenv("DB_READ_ONLY", "true")
    monkeypatch.setenv("SUPABASE_JWT_SECRET", "  ")
    monkeypatch.delenv("CORS_ALLOWED_ORIGINS", raising=False)

    cfg = get_runtime_config("production")

    assert cfg.db_uri == "postgresql+psycopg://u:p@db:5432/pegasus"
    assert cfg.db_read_only is True
    assert cfg.jwt_secret_key is None
    assert cfg.cors_allowed_origins == ""


def test_migration_config_from_environment(monkeypatch):
    monkeypatch.setenv("FIREBASE_URL", "https://legacy.example.test/")
    monkeypatch.setenv("FIREBASE_API_KEY", "key")
    monkeypatch.setenv("SUPABASE_URL", "https://target.example.test")
    monkeypatch.delenv("SUPABASE_SERVICE_ROLE_KEY", raising=False)
    monkeypatch.delenv("MIGRATION_PLACEHOLDER_PASSWORD", raising=False)
    monkeypatch.setenv("LEGACY_HTTP_TIMEOUT", "not-a-number")

    cfg = get_migration_config()

    assert cfg.firebase_url == "https://legacy.example.test"
    assert cfg.service_role_configured is False
    assert cfg.placeholder_password is None
    assert cfg.http_timeout == 30.0


@pytest.mark.parametrize(
    "kwargs",
    [
        {"firebase_url": ""},
        {"firebase_url": "https://x.test", "http_timeout": 0},
        {"firebase_url": "https://x.test", "placeholder_password": "abc"},
    ],
)
def test_migration_config_validation(kwargs):
    with pytest.raises(ValueError):
        MigrationConfig(**kwargs)
