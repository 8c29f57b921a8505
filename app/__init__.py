from __future__ import annotations

from dotenv import load_dotenv
from flask import Flask
from flask_cors import CORS

from app.middlewares.error_handler import init_error_handlers
from app.middlewares.logging import init_request_logging
from app.middlewares.rate_limit import init_rate_limiting
from app.middlewares.request_id import init_request_id
from app.middlewares.security_headers import init_security_headers
from app.routes.api import api_bp, rest_api
from app.routes.core import core_bp
from app.utils.logging import setup_logging
from config import Config
from db import Base, init_engine


def create_app() -> Flask:
    load_dotenv()

    cfg = Config()
    cfg.validate()
    setup_logging(cfg.LOG_LEVEL)

    engine = init_engine(cfg.DATABASE_URL)

    import models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(bind=engine)

    app = Flask(__name__)
    app.config["CFG"] = cfg

    CORS(
        app,
        origins=cfg.ALLOWED_ORIGINS,
        supports_credentials=False,
        allow_headers=["Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        max_age=3600,
    )

    init_request_id(app)
    init_security_headers(app)
    init_rate_limiting(app)
    init_request_logging(app)
    init_error_handlers(app)

    app.register_blueprint(core_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(rest_api, url_prefix="/api/v1")

    return app
