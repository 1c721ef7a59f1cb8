"""Flask application factory"""

import os

from flask import Flask
from flask_jwt_extended import JWTManager
from flask_sqlalchemy import SQLAlchemy

from config import get_config, set_config_name
from config.base import DEFAULT_SECRET_KEY
from pegasus_admin.cors import init_cors
from pegasus_admin.request_log import init_request_logging

# SQLAlchemy instance (importable from other modules)
db = SQLAlchemy()
jwt = JWTManager()


def _ensure_sqlite_dir(db_uri: str) -> None:
    if not db_uri.startswith("sqlite:///") or db_uri.endswith(":memory:"):
        return
    parent = os.path.dirname(db_uri.replace("sqlite:///", "", 1))
    if parent:
        os.makedirs(parent, exist_ok=True)


def _engine_options(db_uri: str) -> dict:
    if not db_uri.startswith("postgresql"):
        return {}
    return {
        "pool_pre_ping": True,
        "pool_recycle": int(os.getenv("DB_POOL_RECYCLE", "1800")),
        "pool_size": int(os.getenv("DB_POOL_SIZE", "5")),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", "10")),
    }


def create_app(config_name="default", db_uri_override: str | None = None):
    """
    Flask application factory

    Args:
        config_name: config profile ('development', 'production', 'default')
        db_uri_override: explicit database URI (tests and scripts)

    Returns:
        Flask app instance
    """
    app = Flask(__name__)

    set_config_name(config_name)
    cfg = get_config()

    if config_name == "production":
        if not cfg.secret_key or cfg.secret_key == DEFAULT_SECRET_KEY:
            raise RuntimeError(
                "SECRET_KEY must be set to a non-default value in production."
            )
        if not cfg.runtime.jwt_secret_key:
            raise RuntimeError("SUPABASE_JWT_SECRET must be set in production.")

    db_uri = str(db_uri_override or cfg.runtime.db_uri)
    _ensure_sqlite_dir(db_uri)

    app.config.update(
        ENV_NAME=config_name,
        SECRET_KEY=cfg.secret_key,
        SQLALCHEMY_DATABASE_URI=db_uri,
        SQLALCHEMY_TRACK_MODIFICATIONS=False,
        SQLALCHEMY_ENGINE_OPTIONS=_engine_options(db_uri),
        # Access tokens are issued by Supabase Auth; only verified here.
        JWT_SECRET_KEY=cfg.runtime.jwt_secret_key or cfg.secret_key,
        JWT_TOKEN_LOCATION=["headers"],
        JWT_IDENTITY_CLAIM="sub",
        JWT_DECODE_AUDIENCE=cfg.runtime.jwt_audience,
        JWT_ENCODE_AUDIENCE=cfg.runtime.jwt_audience,
        DB_READ_ONLY=cfg.runtime.db_read_only,
        CORS_ALLOWED_ORIGINS=cfg.runtime.cors_allowed_origins,
        MIGRATION_CONFIG=cfg.migration,
    )

    db.init_app(app)
    jwt.init_app(app)

    # Order matters: the timer must start before a preflight short-circuits.
    init_request_logging(app)
    init_cors(app)
    _register_blueprints(app)

    return app


def _register_blueprints(app: Flask) -> None:
    from pegasus_admin.routes.migration import migration_bp
    from pegasus_admin.routes.api_admin_distributors import api_admin_distributors_bp
    from pegasus_admin.routes.api_distributor import api_distributor_bp

    app.register_blueprint(migration_bp, url_prefix="/functions/v1")
    app.register_blueprint(api_admin_distributors_bp, url_prefix="/api/admin")
    app.register_blueprint(api_distributor_bp, url_prefix="/api/distributor")
