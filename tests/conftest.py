import sys
from pathlib import Path

import pytest


BACKEND_ROOT = Path(__file__).resolve().parents[1]
for _p in (BACKEND_ROOT, BACKEND_ROOT / "tests"):
    if str(_p) not in sys.path:
        sys.path.insert(0, str(_p))


@pytest.fixture()
def app_client(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    db_path = tmp_path / "test.db"

    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{db_path.as_posix()}")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("RATE_LIMIT_DEFAULT", "100000 per minute")
    monkeypatch.setenv("RATE_LIMIT_GLOBAL", "100000 per minute")

    # Prevent accidental pollution from any existing env config.
    monkeypatch.delenv("ALLOWED_ORIGINS", raising=False)
    monkeypatch.delenv("SCORING_SERVICE_URL", raising=False)
    monkeypatch.delenv("SCORING_API_KEY", raising=False)

    from app import create_app

    app = create_app()
    app.testing = True

    with app.test_client() as client:
        yield app, client


@pytest.fixture()
def db_session(app_client):
    from db import SessionLocal

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
