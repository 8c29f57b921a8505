from __future__ import annotations

from flask import Flask, request

_BASE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
}


def _is_https() -> bool:
    return request.is_secure or str(request.headers.get("X-Forwarded-Proto") or "").lower() == "https"


def init_security_headers(app: Flask) -> None:
    @app.after_request
    def _headers(resp):
        for name, value in _BASE_HEADERS.items():
            resp.headers.setdefault(name, value)

        # Question payloads are per candidate and shuffled per request.
        if (request.path or "").startswith("/api"):
            resp.headers.setdefault("Cache-Control", "no-store")
            resp.headers.setdefault("Pragma", "no-cache")

        if getattr(app.config.get("CFG"), "IS_PRODUCTION", False) and _is_https():
            resp.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")

        return resp
