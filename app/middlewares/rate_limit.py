from __future__ import annotations

from flask import Flask, request

from utils import SimpleRateLimiter

_limiter = SimpleRateLimiter()


def client_ip() -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    if ip and "," in ip:
        ip = ip.split(",", 1)[0].strip()
    return ip


def init_rate_limiting(app: Flask) -> None:
    cfg = app.config["CFG"]

    @app.before_request
    def _rate_limit():
        path = request.path or ""
        if path in {"/health", "/version"}:
            return None

        if path == "/api" or path.startswith("/api/"):
            ip = client_ip()
            _limiter.check(f"{ip}:GLOBAL", cfg.RATE_LIMIT_GLOBAL)
            _limiter.check(f"{ip}:PATH:{path}", cfg.RATE_LIMIT_DEFAULT)

        return None
