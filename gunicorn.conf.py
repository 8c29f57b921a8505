import os


def _env_int(name: str, default: int) -> int:
    try:
        return int(str(os.getenv(name, "") or "").strip() or default)
    except Exception:
        return default


wsgi_app = "app:create_app()"

bind = f"0.0.0.0:{_env_int('PORT', 5002)}"

# Each request thread holds one DB session; keep threads within the pool.
worker_class = "gthread"
workers = max(1, _env_int("WEB_CONCURRENCY", 2))
threads = max(1, min(_env_int("PYTHON_THREADS", 4), _env_int("DB_POOL_SIZE", 5)))

# CANDIDATE_SCORE_GET waits on the scoring service, bounded by SCORING_TIMEOUT_SECONDS.
timeout = max(30, _env_int("GUNICORN_TIMEOUT", 60))
graceful_timeout = max(5, _env_int("GUNICORN_GRACEFUL_TIMEOUT", 30))
keepalive = max(1, _env_int("GUNICORN_KEEPALIVE", 5))

accesslog = "-"
errorlog = "-"
loglevel = str(os.getenv("LOG_LEVEL", "info") or "info").lower()
