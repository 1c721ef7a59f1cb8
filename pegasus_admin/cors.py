"""CORS for the admin dashboard, including the OPTIONS preflight."""

from __future__ import annotations

from flask import Flask, request

DEFAULT_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"
ALLOW_METHODS = "GET, POST, PATCH, OPTIONS"


def parse_origins(raw: str | None) -> set[str]:
    return {origin.strip() for origin in (raw or "").split(",") if origin.strip()}


def init_cors(app: Flask) -> None:
    allowed = parse_origins(app.config.get("CORS_ALLOWED_ORIGINS"))

    def _origin_allowed(origin: str | None) -> bool:
        return bool(origin) and ("*" in allowed or origin in allowed)

    @app.before_request
    def answer_preflight():
        if request.method != "OPTIONS":
            return None
        response = app.make_default_options_response()
        response.status_code = 204
        response.set_data(b"")
        return response

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if not _origin_allowed(origin):
            return response
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Methods"] = ALLOW_METHODS
        response.headers["Access-Control-Allow-Headers"] = (
            request.headers.get("Access-Control-Request-Headers") or DEFAULT_ALLOW_HEADERS
        )
        response.headers["Access-Control-Max-Age"] = "600"
        response.vary.add("Origin")
        return response
