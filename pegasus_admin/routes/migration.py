"""Firebase -> Supabase data migration endpoint.

Keeps the wire format of the edge function the dashboard already calls:
``{success, message, stats}`` on success, ``{success: false, error}`` otherwise.
"""

import logging

from flask import Blueprint, current_app, jsonify

from config.schema import MigrationConfig
from pegasus_admin.services.api_response import json_body
from pegasus_admin.services.errors import ConfigurationError, PegasusError
from pegasus_admin.services.identity import get_identity_provider
from pegasus_admin.services.legacy_client import FirebaseLegacyClient
from pegasus_admin.services.migration_runner import MigrationRunner

logger = logging.getLogger(__name__)

migration_bp = Blueprint("migration", __name__)


def build_migration_runner(config: MigrationConfig) -> MigrationRunner:
    if not config.service_role_configured:
        raise ConfigurationError("Service role key is required but not configured")
    if not config.firebase_api_key:
        raise ConfigurationError("Firebase API key is required but not configured")
    return MigrationRunner(config, FirebaseLegacyClient(config), get_identity_provider())


def _failure(message: str, status: int, code: str):
    return jsonify({"success": False, "error": message, "code": code}), status


@migration_bp.route("/migrate-firebase-data", methods=["POST"])
def migrate_firebase_data():
    config = current_app.config["MIGRATION_CONFIG"]
    if not config.service_role_configured:
        logger.error("Service role key is missing!")
        return _failure(
            "Service role key is required but not configured",
            500,
            ConfigurationError.code,
        )

    data = json_body()
    email = str(data.get("email") or "").strip()
    password = data.get("password")
    if not email or not password:
        return _failure("Email and password are required", 400, "EMAIL_PASSWORD_REQUIRED")

    logger.info("Starting migration for admin user: %s", email)
    try:
        runner = build_migration_runner(config)
        stats = runner.run(email, password)
    except PegasusError as e:
        logger.error("Migration failed: %s", e)
        return _failure(str(e), 500, e.code)
    except Exception as e:
        logger.exception("Unhandled error in migration")
        return _failure(str(e) or "Unknown error during migration", 500, "INTERNAL_ERROR")

    return jsonify(
        {"success": True, "message": "Migration completed", "stats": stats.to_dict()}
    )
