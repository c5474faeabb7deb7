import logging
import os
from datetime import timedelta

from flask import Flask, flash, g, jsonify, redirect, render_template, request, session, url_for
from dotenv import load_dotenv
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.exc import SQLAlchemyError

from app.smartvocab.config import load_config
from app.smartvocab.db import init_db, teardown_db_session
from app.smartvocab.routes import bp as routes_bp
from app.smartvocab.auth import bp as auth_bp, load_current_user
from app.smartvocab.api import bp as api_bp
from app.smartvocab.admin import S3_REQUIRED_KEYS, bp as admin_bp
from app.smartvocab.modules.vocabulary.routes import bp as vocabulary_bp
from app.smartvocab.modules.vocabulary.admin import bp as vocabulary_admin_bp
from app.smartvocab.modules.stories.routes import bp as stories_bp
from app.smartvocab.modules.stories.admin import bp as stories_admin_bp
from app.smartvocab.modules.word_lists.routes import bp as word_lists_bp
from app.smartvocab.modules.games.routes import bp as games_bp

# Tables the running code expects; missing ones mean `alembic upgrade head` was skipped.
EXPECTED_TABLES = (
    "users",
    "roles",
    "permissions",
    "audit_events",
    "vocabulary_cards",
    "card_views",
    "stories",
    "word_lists",
    "list_words",
    "practice_answers",
)

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def configure_logging(app: Flask) -> None:
    """Configure application logging if no handlers are present."""
    if app.logger.handlers:
        return
    level = getattr(logging, str(app.config.get("LOG_LEVEL") or "INFO").upper(), logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
    app.logger.setLevel(level)
    app.logger.addHandler(handler)
    # app.logger is the "app.smartvocab" logger, so module loggers propagate into this handler.
    app.logger.propagate = False


def _check_production_config(app: Flask) -> None:
    if (app.config.get("ENV") or "").strip().lower() not in ("prod", "production"):
        return
    db_url = str(app.config.get("DATABASE_URL") or "").strip()
    if not db_url:
        raise RuntimeError("DATABASE_URL is required in production.")
    if db_url.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
    if str(app.config.get("SECRET_KEY") or "") in ("", "change-me"):
        raise RuntimeError("SECRET_KEY must be set to a real secret in production.")


def _dispose_engine_after_fork(app: Flask) -> None:
    # Forked workers start with an empty connection pool.
    if not hasattr(os, "register_at_fork"):
        return

    def _in_child() -> None:
        engine = app.extensions.get("sqlalchemy_engine")
        if engine is not None:
            engine.dispose()

    os.register_at_fork(after_in_child=_in_child)


def _log_storage_misconfig(app: Flask) -> None:
    if (app.config.get("STORAGE_BACKEND") or "").strip().lower() != "s3":
        return
    missing = [k for k in S3_REQUIRED_KEYS if not app.config.get(k)]
    if missing:
        app.logger.error("S3 storage selected but not configured; missing %s", ", ".join(missing))


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__, template_folder="templates", static_folder="static")
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(days=int(app.config["SESSION_DAYS"]))
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    configure_logging(app)

    from app.smartvocab.security import ensure_csrf_token, needs_csrf_check, validate_csrf

    @app.context_processor
    def _inject_csrf() -> dict:
        return {"csrf_token": ensure_csrf_token()}

    @app.context_processor
    def _inject_permissions() -> dict:
        from app.smartvocab.rbac import user_has_permission

        def has_perm(key: str) -> bool:
            return user_has_permission(getattr(g, "current_user", None), key)

        return {"has_perm": has_perm, "current_user": getattr(g, "current_user", None)}

    @app.template_filter("dateformat")
    def _dateformat_filter(value, format: str = "%Y-%m-%d") -> str:
        if value is None:
            return "—"
        if hasattr(value, "strftime"):
            return value.strftime(format)
        return str(value)

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        ensure_csrf_token()
        session.permanent = True
        if needs_csrf_check(request) and not validate_csrf(request):
            app.logger.warning("CSRF rejected endpoint=%s request_id=%s", request.endpoint, getattr(g, "request_id", None))
            return render_template("errors/400.html", message="CSRF token missing or invalid."), 400
        return None

    _check_production_config(app)
    init_db(app)
    _dispose_engine_after_fork(app)
    _log_storage_misconfig(app)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(api_bp, url_prefix="/api")
    app.register_blueprint(vocabulary_bp)
    app.register_blueprint(games_bp)
    app.register_blueprint(stories_bp)
    app.register_blueprint(word_lists_bp, url_prefix="/lists")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(vocabulary_admin_bp, url_prefix="/admin")
    app.register_blueprint(stories_admin_bp, url_prefix="/admin")

    def _load_user_wrapper():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            g.current_user = None
            return None
        return load_current_user()

    app.before_request(_load_user_wrapper)
    app.teardown_appcontext(teardown_db_session)

    # Migration health (lean): detect drift between code expectations and DB schema.
    app.config.setdefault("_schema_health_ok", True)
    app.config.setdefault("_schema_health_missing", [])
    app.config.setdefault("_schema_health_logged", False)

    def _run_schema_health_check() -> bool:
        missing: list[str] = []
        try:
            engine = app.extensions.get("sqlalchemy_engine")
            if engine is None:
                raise RuntimeError("sqlalchemy_engine not initialized")
            insp = sa_inspect(engine)
            missing = [f"{t} (table)" for t in EXPECTED_TABLES if not insp.has_table(t)]
        except (RuntimeError, SQLAlchemyError) as e:
            app.logger.exception("Schema health check failed: %s", e)

        app.config["_schema_health_missing"] = missing
        app.config["_schema_health_ok"] = not missing
        if missing and not app.config.get("_schema_health_logged"):
            app.config["_schema_health_logged"] = True
            app.logger.error("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(missing))
        return not missing

    _run_schema_health_check()

    @app.before_request
    def _schema_health_guardrail():  # type: ignore[no-redef]
        if app.config.get("_schema_health_ok"):
            return None
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        # Re-check until the schema catches up (migrations may run after boot).
        if _run_schema_health_check():
            return None
        if request.path.startswith("/admin") and getattr(g, "current_user", None):
            return render_template("errors/schema_out_of_date.html", missing=app.config.get("_schema_health_missing") or []), 500
        return None

    @app.errorhandler(500)
    def _err_500(e):  # type: ignore[no-redef]
        app.logger.exception("Unhandled 500 (request_id=%s)", getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Internal server error"}), 500
        return render_template("errors/500.html"), 500

    @app.errorhandler(400)
    def _err_400(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Bad request"}), 400
        return render_template("errors/400.html", message=getattr(e, "description", None)), 400

    @app.errorhandler(403)
    def _err_403(e):  # type: ignore[no-redef]
        missing = getattr(g, "missing_permission", None)
        if missing:
            app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
        if _wants_json():
            return jsonify({"error": "Forbidden"}), 403
        return render_template("errors/403.html", missing_permission=missing), 403

    @app.errorhandler(404)
    def _err_404(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "Not found"}), 404
        return render_template("errors/404.html"), 404

    @app.errorhandler(413)
    def _err_413(e):  # type: ignore[no-redef]
        if _wants_json():
            return jsonify({"error": "File too large. Maximum size is 10MB."}), 413
        flash("File too large. Maximum size is 10MB.", "danger")
        referrer = request.referrer
        if referrer and referrer.startswith(request.host_url):
            return redirect(referrer), 302
        return redirect(url_for("stories_admin.stories_list")), 302

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
