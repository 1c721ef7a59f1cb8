from __future__ import annotations

from flask import current_app, request

from pegasus_admin.services.api_response import error_response as _error_response

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


def guard_write_request(message: str | None = None):
    """Reject write requests while the database is in read-only mode."""
    if request.method not in WRITE_METHODS:
        return None

    if bool(current_app.config.get("DB_READ_ONLY", False)):
        return _error_response(
            message=message or "Database is in read-only mode.",
            code="DB_READ_ONLY",
            status=503,
        )

    return None
