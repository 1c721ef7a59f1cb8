"""JSON envelope shared by the ``/api`` blueprints: ``{ok, code, message, data}``."""

from __future__ import annotations

from typing import Any

from flask import jsonify, request

from pegasus_admin.services.errors import PegasusError


def _envelope(ok: bool, code: str, message: str, data: Any, status: int):
    return jsonify({"ok": ok, "code": code, "message": message, "data": data}), status


def json_body() -> dict:
    """Request JSON as a dict; a missing, malformed or non-object body is empty."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def success_response(
    *,
    data: Any = None,
    status: int = 200,
    code: str | None = None,
    message: str | None = None,
):
    default_code = "CREATED" if status == 201 else "OK"
    return _envelope(True, code or default_code, message or "OK", data, status)


def error_response(
    *,
    message: str,
    code: str = "BAD_REQUEST",
    status: int = 400,
    data: Any = None,
):
    return _envelope(False, code, message, data, status)


def exception_response(exc: PegasusError):
    """Render a service exception with its own code and status."""
    return error_response(message=str(exc), code=exc.code, status=exc.status)
