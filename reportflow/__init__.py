"""
Daily Report Review Platform
Flask Application Factory.

Usage:
    from reportflow import create_app
    app = create_app()           # defaults to APP_ENV, else "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

import click
from flask import Flask
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate

from reportflow.config import config
from reportflow.models import db
from reportflow.middleware.logging_config import configure_logging
from reportflow.middleware.timing import init_request_timing
from reportflow.middleware.jwt_auth import init_jwt_middleware
from reportflow.middleware.rate_limiter import init_rate_limits

# ── SQLite FK enforcement (global engine event) ─────────────────────────
from sqlalchemy import event as _sa_event, engine as _sa_engine

logger = logging.getLogger(__name__)


@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # per-blueprint limits only
    storage_uri=os.getenv("REDIS_URL", "memory://"),  # Redis in production, memory for dev
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Request timing middleware ────────────────────────────────────────
    init_request_timing(app)

    # ── Caller identity (JWT, or X-User-* headers when auth is off) ──────
    init_jwt_middleware(app)

    app.config.setdefault("MAX_CONTENT_LENGTH", 2 * 1024 * 1024)  # 2 MB

    # ── Import all models so Alembic can detect them ─────────────────────
    from reportflow.models import user as _user_models        # noqa: F401
    from reportflow.models import report as _report_models    # noqa: F401

    # ── Auto-create tables (CREATE IF NOT EXISTS) ────────────────────────
    with app.app_context():
        if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite:///") and not app.testing:
            os.makedirs(app.instance_path, exist_ok=True)
        try:
            db.create_all()
            app.logger.info("db.create_all() completed successfully")
        except Exception as e:
            app.logger.warning("db.create_all() failed: %s", e)

    # ── Blueprints ───────────────────────────────────────────────────────
    from reportflow.blueprints.reports_bp import reports_bp
    from reportflow.blueprints.analytics_bp import analytics_bp
    from reportflow.blueprints.health_bp import health_bp

    app.register_blueprint(reports_bp)
    app.register_blueprint(analytics_bp)
    app.register_blueprint(health_bp)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("create-user")
    @click.argument("email")
    @click.argument("full_name")
    @click.argument("role")
    def create_user_cmd(email, full_name, role):
        """Create a user (store_manager | front_office_manager | bdm)."""
        from reportflow.models.user import VALID_ROLES, User
        if role not in VALID_ROLES:
            raise click.BadParameter(f"role must be one of: {', '.join(sorted(VALID_ROLES))}")
        user = User(email=email, full_name=full_name, role=role)
        db.session.add(user)
        db.session.commit()
        logger.info("Created user %s (%s)", user.id, role, extra={"user_id": user.id})
        click.echo(user.id)

    @app.cli.command("issue-token")
    @click.argument("user_id", type=int)
    def issue_token_cmd(user_id):
        """Print an access token for an existing user."""
        from reportflow.models.user import User
        from reportflow.services.jwt_service import generate_access_token
        user = db.session.get(User, user_id)
        if user is None or not user.is_active:
            raise click.ClickException(f"No active user with id {user_id}")
        click.echo(generate_access_token(user.id, user.role, user.full_name))

    # ── Error handlers ───────────────────────────────────────────────────
    @app.errorhandler(404)
    def not_found(e):
        from flask import request
        return {"error": "Not found", "path": request.path}, 404

    @app.errorhandler(500)
    def server_error(e):
        logger.error("500 error: %s", e, exc_info=True)
        return {"error": "Internal server error"}, 500

    @app.errorhandler(405)
    def method_not_allowed(e):
        return {"error": "Method not allowed"}, 405

    @app.errorhandler(429)
    def rate_limited(e):
        return {"error": "Too many requests", "retry_after": e.description}, 429

    # ── Rate limiting (after blueprints registered) ──────────────────────
    init_rate_limits(app, limiter)

    return app
