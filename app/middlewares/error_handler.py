from __future__ import annotations

import logging
from typing import Any

from flask import Flask, g, jsonify
from werkzeug.exceptions import HTTPException

from utils import ApiError, err

_HTTP_CODES = {400: "BAD_REQUEST", 404: "NOT_FOUND", 405: "BAD_REQUEST", 409: "CONFLICT"}


def error_response(code: str, message: str, http_status: int, details: Any = None):
    payload, status = err(code, message, http_status=http_status, details=details)
    if getattr(g, "request_id", None):
        payload["request_id"] = g.request_id
    return jsonify(payload), status


def init_error_handlers(app: Flask) -> None:
    @app.errorhandler(ApiError)
    def _api_error(e: ApiError):
        return error_response(e.code, e.message, e.http_status, e.details)

    @app.errorhandler(HTTPException)
    def _http_error(e: HTTPException):
        status = int(e.code or 500)
        return error_response(_HTTP_CODES.get(status, "INTERNAL"), str(e.description or "HTTP error"), status)

    @app.errorhandler(Exception)
    def _unhandled(e: Exception):
        logging.getLogger("app").exception(
            "Unhandled exception request_id=%s", getattr(g, "request_id", "")
        )
        return error_response("INTERNAL", "Unexpected error", 500)
