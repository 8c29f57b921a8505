from __future__ import annotations

import json
import logging
from typing import Any

from flask import Flask, g, request

from app.middlewares.rate_limit import client_ip
from utils import now_monotonic


def init_request_logging(app: Flask) -> None:
    logger = logging.getLogger("app.request")

    @app.after_request
    def _log(resp):
        start = getattr(g, "start_ts", None)
        latency_ms = (
            int((now_monotonic() - start) * 1000) if isinstance(start, (int, float)) else None
        )

        data: dict[str, Any] = {
            "type": "request",
            "request_id": getattr(g, "request_id", ""),
            "method": request.method,
            "path": request.path,
            "action": getattr(g, "action", None),
            "status": resp.status_code,
            "latency_ms": latency_ms,
            "ip": client_ip(),
        }

        logger.info(json.dumps(data, separators=(",", ":")))
        return resp
