from __future__ import annotations

from typing import Any, Optional

from models import AuditLog
from utils import ValidationError, iso_utc_now, new_log_id, safe_json_string

SYSTEM_ACTOR = "SYSTEM"


def append_audit(
    db,
    *,
    entityType: str,
    entityId: str,
    action: str,
    stageTag: str,
    actor: str = SYSTEM_ACTOR,
    fromState: str = "",
    toState: str = "",
    remark: str = "",
    meta: Any = None,
    at: Optional[str] = None,
) -> None:
    if meta is None:
        meta_json = "{}"
    elif isinstance(meta, str):
        meta_json = meta
    else:
        meta_json = safe_json_string(meta, "{}")

    db.add(
        AuditLog(
            logId=new_log_id(),
            entityType=str(entityType or ""),
            entityId=str(entityId or ""),
            action=str(action or "").upper(),
            fromState=str(fromState or ""),
            toState=str(toState or ""),
            stageTag=str(stageTag or ""),
            remark=str(remark or ""),
            actor=str(actor or SYSTEM_ACTOR),
            at=str(at or iso_utc_now()),
            metaJson=meta_json,
        )
    )


def require_str(data: Any, key: str, *, max_len: int = 200) -> str:
    raw = data.get(key) if isinstance(data, dict) else None
    if raw is not None and not isinstance(raw, (str, int)):
        raise ValidationError(f"{key} must be a string", details={"field": key})
    value = str(raw if raw is not None else "").strip()
    if not value:
        raise ValidationError(f"Missing {key}", details={"field": key})
    if len(value) > max_len:
        raise ValidationError(f"{key} is too long", details={"field": key, "maxLength": max_len})
    return value


def optional_str(data: Any, key: str) -> Optional[str]:
    raw = data.get(key) if isinstance(data, dict) else None
    if raw is None:
        return None
    value = str(raw).strip()
    return value or None


def actor_of(data: Any) -> str:
    return optional_str(data, "actor") or SYSTEM_ACTOR
