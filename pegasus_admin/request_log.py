"""Structured access log: one JSON object per request on ``pegasus_admin.request``."""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, request

LOGGER_NAME = "pegasus_admin.request"
REQUEST_ID_HEADER = "X-Request-ID"
_ERROR_CODE_KEYS = ("code", "error_code")


def get_request_logger() -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        logger.propagate = False
    return logger


def resolve_request_id() -> str:
    incoming = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    return incoming[:128] if incoming else uuid.uuid4().hex


def _route() -> str:
    rule = request.url_rule
    return rule.rule if rule is not None else request.path


def _elapsed_ms() -> float:
    started = g.get("request_started_at")
    if started is None:
        return 0.0
    return round((time.perf_counter() - started) * 1000, 2)


def error_code_for(response) -> str | None:
    """Error code of a 4xx/5xx response: its JSON ``code`` or ``HTTP_<status>``."""
    status = int(response.status_code or 0)
    if status < 400:
        return None
    payload = response.get_json(silent=True) if response.is_json else None
    if isinstance(payload, dict):
        for key in _ERROR_CODE_KEYS:
            if payload.get(key) not in (None, ""):
                return str(payload[key])
    return f"HTTP_{status}"


def log_request(
    logger: logging.Logger,
    *,
    request_id: str,
    method: str,
    route: str,
    status: int,
    latency: float,
    error_code: str | None,
) -> None:
    logger.info(
        json.dumps(
            {
                "request_id": request_id,
                "method": method,
                "route": route,
                "status": status,
                "latency": latency,
                "error_code": error_code,
            },
            separators=(",", ":"),
        )
    )


def init_request_logging(app: Flask) -> None:
    """Register the request-id, timing and access-log hooks on ``app``."""
    logger = get_request_logger()

    @app.before_request
    def start_request_timer():
        g.request_id = resolve_request_id()
        g.request_started_at = time.perf_counter()
        g.request_logged = False

    @app.after_request
    def log_response(response):
        request_id = g.get("request_id") or resolve_request_id()
        log_request(
            logger,
            request_id=request_id,
            method=request.method,
            route=_route(),
            status=int(response.status_code or 0),
            latency=_elapsed_ms(),
            error_code=error_code_for(response),
        )
        g.request_logged = True
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @app.teardown_request
    def log_unhandled_exception(exc):
        if exc is None or g.get("request_logged"):
            return
        log_request(
            logger,
            request_id=g.get("request_id") or resolve_request_id(),
            method=request.method,
            route=_route(),
            status=500,
            latency=_elapsed_ms(),
            error_code=type(exc).__name__,
        )
        g.request_logged = True
