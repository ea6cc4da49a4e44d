import logging
import os

from flask import Flask, g
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect
from werkzeug.exceptions import HTTPException

from app.awass.config import load_config, load_settings
from app.awass.db import init_db, session_scope, teardown_db_session
from app.awass.errors import AppError
from app.awass.auth import load_current_admin
from app.awass.responses import error_response
from app.awass.security import csrf_protect
from app.awass.storage import StorageError

logger = logging.getLogger(__name__)

_S3_REQUIRED = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")


def create_app() -> Flask:
    load_dotenv()
    settings = load_settings()
    # Production guardrails (fail fast with clear logs)
    problems = settings.problems()
    if problems:
        raise RuntimeError(" ".join(problems))

    app = Flask(__name__)
    app.config.from_mapping(load_config(settings))
    app.json.sort_keys = False  # type: ignore[attr-defined]

    init_db(app)
    _dispose_engine_on_fork(app)

    if app.config["STORAGE_BACKEND"] == "s3":
        missing = [k for k in _S3_REQUIRED if not app.config.get(k)]
        if missing:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing))

    # load_current_admin sets g.request_id, so it runs before the CSRF check logs anything.
    app.before_request(load_current_admin)
    app.before_request(csrf_protect)
    app.teardown_appcontext(teardown_db_session)

    _register_blueprints(app)
    _register_error_handlers(app)
    _seed_plans(app)

    logger.info("create_app() complete; app ready to serve")
    return app


def _register_blueprints(app: Flask) -> None:
    from app.awass.routes import bp as routes_bp
    from app.awass.admin import bp as admin_bp
    from app.awass.modules.plans.routes import bp as plans_bp
    from app.awass.modules.members.routes import bp as members_bp
    from app.awass.modules.transactions.routes import bp as transactions_bp
    from app.awass.modules.renewals.routes import bp as renewals_bp

    app.register_blueprint(routes_bp)
    app.register_blueprint(admin_bp, url_prefix="/api/admin")
    for bp in (plans_bp, members_bp, transactions_bp, renewals_bp):
        app.register_blueprint(bp, url_prefix="/api")


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(AppError)
    def _err_app(e: AppError):  # type: ignore[no-redef]
        rid = g.get("request_id")
        if e.status_code == 403:
            app.logger.warning("Forbidden: %s missing_role=%s request_id=%s", e.message, g.get("missing_role"), rid)
        elif e.status_code >= 500:
            app.logger.error("%s (request_id=%s): %s", type(e).__name__, rid, e.message)
        # details only add information when several checks failed at once
        return error_response(e.message, e.status_code, details=e.details if len(e.details) > 1 else None)

    @app.errorhandler(StorageError)
    def _err_storage(e: StorageError):  # type: ignore[no-redef]
        app.logger.exception("Storage failure (request_id=%s)", g.get("request_id"))
        return error_response("Gagal mengakses penyimpanan bukti transfer", 500)

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        return error_response("File too large. Maximum size is 5MB.", 413)

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return error_response(e.description or e.name, e.code or 500)

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        rid = g.get("request_id")
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        message = str(e) if app.config.get("ENV") == "development" else "Internal server error"
        return error_response(message, 500, request_id=rid)


def _dispose_engine_on_fork(app: Flask) -> None:
    # gunicorn --preload forks after the engine exists; children must not share pooled sockets.
    if not hasattr(os, "register_at_fork"):
        return

    def _after_fork_child():
        engine = app.extensions.get("sqlalchemy_engine")
        if engine:
            engine.dispose(close=False)
            app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

    os.register_at_fork(after_in_child=_after_fork_child)


def _seed_plans(app: Flask) -> None:
    """Insert missing reference plans. Skipped when the schema is not migrated yet."""
    from app.awass.modules.plans.service import seed_default_plans

    if not sa_inspect(app.extensions["sqlalchemy_engine"]).has_table("membership_plans"):
        app.logger.warning("membership_plans table missing; run `alembic upgrade head` before serving.")
        return
    with session_scope(app) as s:
        created = seed_default_plans(s)
    if created:
        app.logger.info("Seeded membership plans: %s", ", ".join(created))
