from __future__ import annotations

import json
import logging
from typing import Any

import requests

from config import Config
from envelopes import unwrap_record
from utils import ApiError, safe_json_string

log = logging.getLogger(__name__)

SCORE_FIELDS = ("score", "accuracy", "completed", "completedAt", "totalQuestions", "correctAnswers")


def _parse_json_maybe(text: str) -> Any:
    s = str(text or "").strip()
    if not s:
        return None
    try:
        return json.loads(s)
    except ValueError:
        return None


def fetch_candidate_score(*, cfg: Config, candidate_id: str) -> dict[str, Any]:
    """Score/accuracy record for one candidate from the scoring service.

    The service has answered with a bare record, ``{"data": {...}}`` and
    ``{"result": {...}}`` over time; all of them decode to the same dict.
    """
    url = str(cfg.SCORING_SERVICE_URL or "").strip()
    if not url:
        raise ApiError("INTERNAL", "SCORING_SERVICE_URL is not configured", http_status=500)

    headers: dict[str, str] = {}
    if cfg.SCORING_API_KEY:
        headers["X-Api-Key"] = cfg.SCORING_API_KEY

    try:
        resp = requests.post(
            url,
            json={"candidateId": str(candidate_id)},
            headers=headers,
            timeout=cfg.SCORING_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise ApiError("INTERNAL", f"Failed to call scoring service: {e}", http_status=502)

    raw_text = str(resp.text or "")
    try:
        parsed = resp.json()
    except ValueError:
        parsed = _parse_json_maybe(raw_text)

    if resp.status_code == 404:
        raise ApiError("NOT_FOUND", "No score recorded for candidate", http_status=404, details={"candidateId": candidate_id})

    if resp.status_code >= 400:
        snippet = raw_text.strip()[:500]
        raise ApiError(
            "INTERNAL",
            f"Scoring service failed (HTTP {resp.status_code}): {snippet or 'no response body'}",
            http_status=502,
        )

    if isinstance(parsed, dict) and parsed.get("ok") is False:
        err_obj = parsed.get("error") if isinstance(parsed.get("error"), dict) else {}
        msg = str((err_obj or {}).get("message") or "").strip() or "Scoring service failed"
        raise ApiError("INTERNAL", msg, http_status=502)

    record = unwrap_record(parsed)
    if not record:
        log.warning("scoring response without a record: %s", safe_json_string(parsed, fallback=raw_text[:500]))
        raise ApiError("INTERNAL", "Scoring service returned no score record", http_status=502)

    out = {k: record.get(k) for k in SCORE_FIELDS if k in record}
    out["candidateId"] = str(record.get("candidateId") or candidate_id)
    return out
