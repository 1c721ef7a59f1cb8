"""Client for the legacy Firebase store (Identity Toolkit + Realtime Database REST)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import requests

from config.schema import MigrationConfig
from pegasus_admin.services.errors import AuthenticationError, FetchError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LegacySession:
    id_token: str
    local_id: Optional[str] = None


class FirebaseLegacyClient:
    """Reads collections from the legacy Realtime Database as a signed-in admin."""

    def __init__(self, config: MigrationConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()
        self.timeout = config.http_timeout

    def sign_in(self, email: str, password: str) -> LegacySession:
        """
        Exchange admin credentials for an ID token.

        Raises:
            AuthenticationError: credentials rejected, endpoint unreachable,
                or no token in the response.
        """
        logger.info("Authenticating with Firebase as %s", email)
        try:
            response = self.session.post(
                self.config.firebase_auth_url,
                params={"key": self.config.firebase_api_key},
                json={"email": email, "password": password, "returnSecureToken": True},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error("Firebase auth endpoint unreachable: %s", e)
            raise AuthenticationError(f"Firebase authentication failed: {e}") from e

        if not response.ok:
            reason = _error_message(response) or response.reason
            logger.error("Firebase auth error: %s", reason)
            raise AuthenticationError(f"Firebase authentication failed: {reason}")

        payload = _json_or_none(response) or {}
        id_token = payload.get("idToken")
        if not id_token:
            raise AuthenticationError("Failed to get Firebase authentication token")
        logger.info("Firebase authentication successful")
        return LegacySession(id_token=id_token, local_id=payload.get("localId"))

    def fetch_collection(self, path: str, session: LegacySession) -> Optional[dict[str, Any]]:
        """
        Fetch ``<firebase_url>/<path>.json``.

        Returns the collection keyed by record id, or None when the
        collection is absent (the database answers ``null``).

        Raises:
            FetchError: transport failure, non-2xx answer, or a body that is
                not a JSON object.
        """
        url = f"{self.config.firebase_url}/{path}.json"
        logger.info("Fetching from Firebase: %s", path)
        try:
            response = self.session.get(
                url, params={"auth": session.id_token}, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.exceptions.RequestException as e:
            logger.error("Error fetching from Firebase (%s): %s", path, e)
            raise FetchError(f"Failed to fetch from Firebase: {path}: {e}") from e

        data = _json_or_none(response)
        if data is None:
            return None
        if not isinstance(data, dict):
            raise FetchError(f"Unexpected payload for {path}: {type(data).__name__}")
        logger.info("Fetched %d records from Firebase: %s", len(data), path)
        return data


def _json_or_none(response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(response) -> Optional[str]:
    payload = _json_or_none(response)
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            return error.get("message")
    return None
