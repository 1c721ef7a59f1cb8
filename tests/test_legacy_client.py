import pytest
import requests

from pegasus_admin.services.errors import AuthenticationError, FetchError
from pegasus_admin.services.legacy_client import FirebaseLegacyClient, LegacySession


class _FakeResponse:
    def __init__(self, status_code=200, payload=None, raw_text=None):
        self.status_code = status_code
        self._payload = payload
        self._raw_text = raw_text
        self.reason = "Bad Request" if status_code >= 400 else "OK"

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._raw_text is not None:
            raise ValueError("not json")
        return self._payload

    def raise_for_status(self):
        if not self.ok:
            raise requests.exceptions.HTTPError(f"{self.status_code} {self.reason}")


class _FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def _answer(self, method, url, **kwargs):
        self.calls.append((method, url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response

    def post(self, url, **kwargs):
        return self._answer("POST", url, **kwargs)

    def get(self, url, **kwargs):
        return self._answer("GET", url, **kwargs)


def _client(migration_config, **session_kwargs):
    session = _FakeSession(**session_kwargs)
    return FirebaseLegacyClient(migration_config, session=session), session


def test_sign_in_posts_credentials_and_returns_token(migration_config):
    client, session = _client(
        migration_config,
        response=_FakeResponse(payload={"idToken": "tok-1", "localId": "admin-1"}),
    )

    result = client.sign_in("admin@example.com", "secret")

    assert result == LegacySession(id_token="tok-1", local_id="admin-1")
    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == migration_config.firebase_auth_url
    assert kwargs["params"] == {"key": "legacy-api-key"}
    assert kwargs["json"] == {
        "email": "admin@example.com",
        "password": "secret",
        "returnSecureToken": True,
    }
    assert kwargs["timeout"] == migration_config.http_timeout


def test_sign_in_surfaces_legacy_error_message(migration_config):
    client, _ = _client(
        migration_config,
        response=_FakeResponse(400, payload={"error": {"message": "INVALID_PASSWORD"}}),
    )

    with pytest.raises(AuthenticationError, match="INVALID_PASSWORD"):
        client.sign_in("admin@example.com", "wrong")


def test_sign_in_without_token_is_rejected(migration_config):
    client, _ = _client(migration_config, response=_FakeResponse(payload={"localId": "x"}))

    with pytest.raises(AuthenticationError, match="token"):
        client.sign_in("admin@example.com", "secret")


def test_sign_in_transport_failure_is_authentication_error(migration_config):
    client, _ = _client(
        migration_config, error=requests.exceptions.ConnectionError("connection refused")
    )

    with pytest.raises(AuthenticationError):
        client.sign_in("admin@example.com", "secret")


def test_fetch_collection_uses_token_and_path(migration_config):
    client, session = _client(
        migration_config, response=_FakeResponse(payload={"k1": {"Email": "a@b.c"}})
    )

    data = client.fetch_collection("users", LegacySession(id_token="tok-1"))

    assert data == {"k1": {"Email": "a@b.c"}}
    method, url, kwargs = session.calls[0]
    assert method == "GET"
    assert url == "https://legacy.example.test/users.json"
    assert kwargs["params"] == {"auth": "tok-1"}


def test_fetch_collection_returns_none_for_absent_collection(migration_config):
    client, _ = _client(migration_config, response=_FakeResponse(payload=None))

    assert client.fetch_collection("operations", LegacySession(id_token="t")) is None


@pytest.mark.parametrize(
    "session_kwargs",
    [
        {"response": _FakeResponse(401, payload={"error": "Permission denied"})},
        {"response": _FakeResponse(payload=["not", "an", "object"])},
        {"error": requests.exceptions.Timeout("read timed out")},
    ],
)
def test_fetch_collection_failures_raise_fetch_error(migration_config, session_kwargs):
    client, _ = _client(migration_config, **session_kwargs)

    with pytest.raises(FetchError):
        client.fetch_collection("users", LegacySession(id_token="t"))
