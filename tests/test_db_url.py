import pytest
from sqlalchemy.exc import ArgumentError

from db import _normalize_database_url, _pool_kwargs


@pytest.mark.parametrize(
    "raw",
    [
        "postgres://u:p@db.example.test:5432/assess",
        "postgresql://u:p@db.example.test:5432/assess",
        "postgresql+psycopg2://u:p@db.example.test:5432/assess",
        "postgresql+psycopg://u:p@db.example.test:5432/assess",
    ],
)
def test_normalize_database_url_uses_psycopg(raw):
    assert _normalize_database_url(raw) == "postgresql+psycopg://u:p@db.example.test:5432/assess"


def test_normalize_database_url_leaves_sqlite_alone():
    assert _normalize_database_url(" sqlite:///./assessments.db ") == "sqlite:///./assessments.db"


def test_pool_kwargs_only_for_server_databases(monkeypatch):
    monkeypatch.setenv("DB_POOL_SIZE", "9")
    monkeypatch.setenv("DB_POOL_RECYCLE", "0")
    assert _pool_kwargs("sqlite:///x.db") == {}
    kwargs = _pool_kwargs("postgresql+psycopg://u:p@h/db")
    assert kwargs["pool_size"] == 9
    assert "pool_recycle" not in kwargs


def test_init_engine_passes_sslmode_for_postgres(monkeypatch):
    import db as dbmod

    monkeypatch.setenv("DB_SSLMODE", "require")
    monkeypatch.setattr(dbmod, "engine", dbmod.engine)
    captured = {}

    def fake_create_engine(url, **kwargs):
        captured["url"] = url
        captured["connect_args"] = kwargs.get("connect_args") or {}

        class DummyEngine:
            pass

        return DummyEngine()

    monkeypatch.setattr(dbmod, "create_engine", fake_create_engine)
    monkeypatch.setattr(dbmod.SessionLocal, "configure", lambda **_kwargs: None)

    dbmod.init_engine("postgres://u:p@h:5432/db")

    assert captured["url"] == "postgresql+psycopg://u:p@h:5432/db"
    assert captured["connect_args"] == {"sslmode": "require"}


def test_init_engine_rejects_empty_url():
    import db as dbmod

    with pytest.raises(ArgumentError):
        dbmod.init_engine("   ")
