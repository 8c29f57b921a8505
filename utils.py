from __future__ import annotations

import json
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any

from cachetools import TTLCache

ALLOWED_ERROR_CODES = {
    "BAD_REQUEST",
    "NOT_FOUND",
    "CONFLICT",
    "INTERNAL",
}

_CODE_MAP = {
    "BAD_JSON": "BAD_REQUEST",
    "VALIDATION": "BAD_REQUEST",
    "ACTION_NOT_IMPLEMENTED": "BAD_REQUEST",
    "STAGE_NOT_FOUND": "NOT_FOUND",
    "UNKNOWN_ERROR": "INTERNAL",
}


def map_error_code(code: str) -> str:
    c = str(code or "").upper().strip()
    if c in ALLOWED_ERROR_CODES:
        return c
    return _CODE_MAP.get(c, "INTERNAL")


class ApiError(Exception):
    def __init__(self, code: str, message: str, http_status: int = 400, details: Any = None):
        super().__init__(message)
        self.code = map_error_code(code)
        self.message = str(message or "")
        self.http_status = http_status
        self.details = details


class ValidationError(ApiError):
    def __init__(self, message: str, details: Any = None):
        super().__init__("BAD_REQUEST", message, http_status=400, details=details)


class NotFoundError(ApiError):
    def __init__(self, message: str, details: Any = None):
        super().__init__("NOT_FOUND", message, http_status=404, details=details)


class UpstreamFetchError(Exception):
    """A secondary lookup failed; callers treat it as "no data from this source"."""


class PersistenceError(Exception):
    """A write the engine issued on its own (not requested by the caller) failed."""


def ok(data: Any, http_status: int = 200):
    return {"ok": True, "data": data}, http_status


def err(code: str, message: str, http_status: int = 400, details: Any = None):
    return (
        {"ok": False, "error": {"code": map_error_code(code), "message": str(message or ""), "details": details}},
        http_status,
    )


def iso_utc_now() -> str:
    dt = datetime.now(timezone.utc)
    dt = dt.replace(microsecond=(dt.microsecond // 1000) * 1000)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def new_uuid() -> str:
    return str(uuid.uuid4())


def new_log_id() -> str:
    return f"LOG-{new_uuid()}"


def safe_json_string(value: Any, fallback: str = "") -> str:
    try:
        return json.dumps(value)
    except Exception:
        return fallback


class SimpleRateLimiter:
    def __init__(self):
        self._counts = TTLCache(maxsize=50_000, ttl=60)

    @staticmethod
    def _parse_limit_per_minute(limit: str) -> int:
        m = re.match(r"^\s*(\d+)\s+per\s+minute\s*$", str(limit or ""), re.IGNORECASE)
        if not m:
            return 300
        return int(m.group(1))

    def check(self, key: str, limit: str) -> None:
        max_per_minute = self._parse_limit_per_minute(limit)
        current = int(self._counts.get(key, 0)) + 1
        self._counts[key] = current
        if current > max_per_minute:
            raise ApiError("CONFLICT", "Rate limit exceeded", http_status=429)


def now_monotonic() -> float:
    return time.monotonic()
