from datetime import date, datetime, time, timedelta

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for
from sqlalchemy import func, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.smartvocab.audit import record_event
from app.smartvocab.db import db_session
from app.smartvocab.models import AuditEvent, User
from app.smartvocab.modules.stories.models import Story
from app.smartvocab.modules.vocabulary.models import VocabularyCard
from app.smartvocab.modules.word_lists.models import WordList
from app.smartvocab.rbac import require_permission

bp = Blueprint("admin", __name__)

AUDIT_PAGE_SIZE = 200
S3_REQUIRED_KEYS = ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")


def _iso_date_arg(name: str) -> tuple[str, date | None]:
    """Raw query value plus the parsed date; flashes when the value is not YYYY-MM-DD."""
    raw = (request.args.get(name) or "").strip()
    if not raw:
        return raw, None
    try:
        return raw, date.fromisoformat(raw)
    except ValueError:
        flash(f"{name} must be YYYY-MM-DD", "danger")
        return raw, None


def _system_status(s: Session) -> dict:
    cfg = current_app.config
    backend = (cfg.get("STORAGE_BACKEND") or "local").strip().lower()
    missing_s3 = [k for k in S3_REQUIRED_KEYS if not cfg.get(k)] if backend == "s3" else []
    status = {
        "env": (cfg.get("ENV") or "development").strip().lower(),
        "db_connected": True,
        "db_error": None,
        "storage_backend": backend,
        "storage_configured": not missing_s3,
        "storage_error": f"Missing: {', '.join(missing_s3)}" if missing_s3 else None,
    }
    try:
        s.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        s.rollback()
        status["db_connected"] = False
        status["db_error"] = str(e)
    return status


def _content_counts(s: Session) -> dict[str, int]:
    return {
        name: s.query(func.count(col)).scalar() or 0
        for name, col in (
            ("users", User.id),
            ("cards", VocabularyCard.id),
            ("stories", Story.id),
            ("word_lists", WordList.id),
        )
    }


@bp.get("/")
@require_permission("admin.view")
def index():
    s = db_session()
    status = _system_status(s)
    counts = _content_counts(s) if status["db_connected"] else {}
    return render_template("admin/index.html", system_status=status, counts=counts)


@bp.get("/audit")
@require_permission("admin.view")
def audit_list():
    """Latest audit events, filterable by action, actor email and an inclusive date range."""
    s = db_session()
    action = (request.args.get("action") or "").strip()
    actor_email = (request.args.get("actor_email") or "").strip().lower()
    date_from_raw, date_from = _iso_date_arg("date_from")
    date_to_raw, date_to = _iso_date_arg("date_to")

    q = s.query(AuditEvent)
    if action:
        q = q.filter(AuditEvent.action.contains(action, autoescape=True))
    if actor_email:
        q = q.filter(AuditEvent.actor_user_email.contains(actor_email, autoescape=True))
    if date_from:
        q = q.filter(AuditEvent.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        q = q.filter(AuditEvent.created_at < datetime.combine(date_to + timedelta(days=1), time.min))

    events = q.order_by(AuditEvent.created_at.desc(), AuditEvent.id.desc()).limit(AUDIT_PAGE_SIZE).all()
    return render_template(
        "admin/audit/list.html",
        events=events,
        action=action,
        actor_email=actor_email,
        date_from=date_from_raw,
        date_to=date_to_raw,
    )


@bp.get("/accounts")
@require_permission("admin.edit")
def accounts_list():
    s = db_session()
    users = s.query(User).order_by(User.created_at.asc(), User.id.asc()).all()
    return render_template("admin/accounts/list.html", users=users)


@bp.post("/accounts/<int:user_id>/active")
@require_permission("admin.edit")
def accounts_set_active(user_id: int):
    s = db_session()
    admin = g.current_user
    user = s.get(User, user_id)
    if user is None:
        abort(404)
    if user.id == admin.id:
        flash("You cannot deactivate your own account.", "danger")
        return redirect(url_for("admin.accounts_list"))

    was_active = user.is_active
    user.is_active = request.form.get("is_active") == "1"
    if user.is_active != was_active:
        record_event(
            s,
            actor=admin,
            action="user.update",
            entity_type="User",
            entity_id=str(user.id),
            metadata={"is_active": {"old": was_active, "new": user.is_active}},
        )
    s.commit()
    flash(f"Account {'activated' if user.is_active else 'deactivated'} for {user.email}.", "success")
    return redirect(url_for("admin.accounts_list"))
