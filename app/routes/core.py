from __future__ import annotations

import logging

from flask import Blueprint, current_app, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

import db as db_module
from utils import iso_utc_now

core_bp = Blueprint("core", __name__)


def ping_db() -> bool:
    if db_module.engine is None:
        return False
    try:
        with db_module.engine.connect() as conn:
            conn.execute(text("select 1"))
        return True
    except SQLAlchemyError:
        logging.getLogger(__name__).warning("database ping failed", exc_info=True)
        return False


@core_bp.get("/health")
def health():
    ok = ping_db()
    cfg = current_app.config["CFG"]
    status = 200 if ok else 503
    return (
        jsonify(
            {
                "status": "ok" if ok else "degraded",
                "time": iso_utc_now(),
                "version": cfg.APP_VERSION,
                "db": "ok" if ok else "error",
            }
        ),
        status,
    )


@core_bp.get("/version")
def version():
    cfg = current_app.config["CFG"]
    return jsonify({"version": cfg.APP_VERSION, "env": cfg.APP_ENV, "time": iso_utc_now()})
