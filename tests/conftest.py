import os
import uuid
from urllib.parse import urlparse

import pytest
from flask_jwt_extended import create_access_token

from config.schema import MigrationConfig
from pegasus_admin import create_app, db
from pegasus_admin.services.identity import IdentityError


def _resolve_test_db_uri(tmp_path) -> str:
    db_uri = (os.environ.get("TEST_DATABASE_URL") or "").strip()
    if not db_uri:
        return f"sqlite:///{(tmp_path / 'pegasus_test.db').as_posix()}"

    if db_uri.startswith(("postgresql://", "postgresql+psycopg://", "postgres://")):
        parsed = urlparse(db_uri)
        db_name = (parsed.path or "").lstrip("/")
        if not db_name or "test" not in db_name.lower():
            raise RuntimeError(
                "Refusing to run pytest on non-test Postgres DB. "
                "Use TEST_DATABASE_URL with a database name containing 'test'."
            )
        return db_uri.replace("postgresql://", "postgresql+psycopg://", 1).replace(
            "postgres://", "postgresql+psycopg://", 1
        )

    raise RuntimeError(
        "Unsupported TEST_DATABASE_URL scheme. "
        "Use postgresql+psycopg://..."
    )


class FakeIdentityProvider:
    """In-memory stand-in for the Supabase Auth admin API."""

    def __init__(self):
        self.users = {}
        self.deleted = []
        self.fixed_ids = {}

    def create_user(self, email, password, metadata=None):
        if "@" not in email:
            raise IdentityError("Unable to validate email address: invalid format")
        user_id = self.fixed_ids.get(email) or str(uuid.uuid4())
        self.users[user_id] = {"email": email, "password": password, "metadata": metadata}
        return user_id

    def delete_user(self, user_id):
        self.deleted.append(user_id)
        self.users.pop(user_id, None)


@pytest.fixture()
def migration_config():
    return MigrationConfig(
        firebase_url="https://legacy.example.test",
        firebase_api_key="legacy-api-key",
        supabase_url="https://target.example.test",
        supabase_service_role_key="service-role-key",
        placeholder_password="Pl4ceholder-for-tests",
    )


@pytest.fixture()
def identity_provider():
    return FakeIdentityProvider()


@pytest.fixture()
def app(tmp_path, monkeypatch, migration_config):
    db_uri = _resolve_test_db_uri(tmp_path)
    monkeypatch.setenv(
        "SUPABASE_JWT_SECRET", "test-jwt-secret-key-at-least-32-bytes-long"
    )
    monkeypatch.delenv("DB_READ_ONLY", raising=False)
    monkeypatch.delenv("CORS_ALLOWED_ORIGINS", raising=False)
    app = create_app("default", db_uri_override=db_uri)
    app.config["TESTING"] = True
    app.config["MIGRATION_CONFIG"] = migration_config
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def bearer():
    def _bearer(user_id: str) -> dict:
        token = create_access_token(identity=user_id)
        return {"Authorization": f"Bearer {token}"}

    return _bearer
