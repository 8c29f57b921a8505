import os


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, "") or "").strip() or default)
    except Exception:
        return default


class Config:
    def __init__(self) -> None:
        self.APP_ENV = os.getenv("APP_ENV", "development")
        self.APP_VERSION = os.getenv("APP_VERSION", "dev")
        self.HOST = os.getenv("HOST", "0.0.0.0")
        self.PORT = int(os.getenv("PORT", "5002"))

        self.DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./assessments.db")

        self.ALLOWED_ORIGINS = [
            s.strip() for s in (os.getenv("ALLOWED_ORIGINS", "*") or "*").split(",") if s.strip()
        ]

        self.RATE_LIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "300 per minute")
        self.RATE_LIMIT_GLOBAL = os.getenv("RATE_LIMIT_GLOBAL", "2000 per minute")

        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        # Emit the resolution trace as one JSON log line for successful requests too
        # (failed resolutions always return it to the caller).
        self.TRACE_TELEMETRY = os.getenv("TRACE_TELEMETRY", "1") == "1"

        # Black-box scoring collaborator (test completion / score + accuracy per candidate).
        self.SCORING_SERVICE_URL = os.getenv("SCORING_SERVICE_URL", "").strip()
        self.SCORING_API_KEY = os.getenv("SCORING_API_KEY", "").strip()
        self.SCORING_TIMEOUT_SECONDS = _env_float("SCORING_TIMEOUT_SECONDS", 15.0)

    @property
    def IS_PRODUCTION(self) -> bool:
        return str(self.APP_ENV or "").strip().lower() in {"prod", "production"}

    def validate(self) -> None:
        if self.IS_PRODUCTION and str(self.DATABASE_URL or "").startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production")

        if self.IS_PRODUCTION and any(str(o or "").strip() == "*" for o in (self.ALLOWED_ORIGINS or [])):
            raise RuntimeError("ALLOWED_ORIGINS must not contain '*' in production")

        if self.SCORING_TIMEOUT_SECONDS <= 0:
            raise RuntimeError("SCORING_TIMEOUT_SECONDS must be positive")
