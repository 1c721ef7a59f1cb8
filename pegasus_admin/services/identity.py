"""Target identity provider (Supabase Auth admin API)."""

from __future__ import annotations

import logging
from typing import Optional

from flask import current_app
from supabase import Client, create_client

from config.schema import MigrationConfig
from pegasus_admin.services.errors import ConfigurationError

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    """The identity provider refused to create or delete a user."""


class SupabaseIdentityProvider:
    """Creates and deletes auth users with the service-role key."""

    def __init__(self, client: Client):
        self.client = client

    @classmethod
    def from_config(cls, config: MigrationConfig) -> "SupabaseIdentityProvider":
        if not config.service_role_configured:
            raise ConfigurationError(
                "Service role key is required but not configured"
            )
        return cls(create_client(config.supabase_url, config.supabase_service_role_key))

    def create_user(
        self, email: str, password: str, metadata: Optional[dict] = None
    ) -> str:
        """Create a confirmed user and return its id."""
        attributes = {"email": email, "password": password, "email_confirm": True}
        if metadata:
            attributes["user_metadata"] = metadata
        try:
            response = self.client.auth.admin.create_user(attributes)
        except Exception as e:
            raise IdentityError(str(e)) from e
        user = getattr(response, "user", None)
        if user is None or not getattr(user, "id", None):
            raise IdentityError(f"No user returned for {email}")
        return str(user.id)

    def delete_user(self, user_id: str) -> None:
        try:
            self.client.auth.admin.delete_user(user_id)
        except Exception as e:
            raise IdentityError(str(e)) from e


def get_identity_provider() -> SupabaseIdentityProvider:
    """Identity provider for the current app, built once from its config."""
    provider = current_app.extensions.get("pegasus_identity_provider")
    if provider is None:
        provider = SupabaseIdentityProvider.from_config(
            current_app.config["MIGRATION_CONFIG"]
        )
        current_app.extensions["pegasus_identity_provider"] = provider
    return provider
