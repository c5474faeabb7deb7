from __future__ import annotations

import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from flask import Blueprint, current_app, flash, g, redirect, render_template, request, session, url_for
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from werkzeug.security import check_password_hash, generate_password_hash

from app.smartvocab.audit import record_event
from app.smartvocab.constants import MIN_PASSWORD_LENGTH
from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.utils import is_valid_email, normalize_email, safe_next_path

bp = Blueprint("auth", __name__)

MISSING_FIELDS_ERROR = "All fields are required"
DUPLICATE_EMAIL_ERROR = "User with this email already exists"
INVALID_CREDENTIALS_ERROR = "Invalid credentials"
RATE_LIMITED_ERROR = "Too many login attempts. Please wait 5 minutes."


class DuplicateEmailError(ValueError):
    pass


# ---------- Rate limiting (per app, per client IP) ----------
def _attempts() -> dict[str, list[datetime]]:
    return current_app.extensions.setdefault("login_attempts", defaultdict(list))


def check_rate_limit(ip: str) -> bool:
    """True when the IP has used up its login attempts for the current window."""
    window = int(current_app.config.get("LOGIN_RATE_WINDOW", 300))
    limit = int(current_app.config.get("LOGIN_RATE_LIMIT", 5))
    attempts = _attempts()
    cutoff = datetime.utcnow() - timedelta(seconds=window)
    recent = [t for t in attempts.get(ip, ()) if t > cutoff]
    if not recent:
        attempts.pop(ip, None)
        return False
    attempts[ip] = recent
    return len(recent) >= limit


def record_attempt(ip: str) -> None:
    _attempts()[ip].append(datetime.utcnow())


def clear_attempts(ip: str) -> None:
    _attempts().pop(ip, None)


# ---------- Account service ----------
def validate_registration(
    s: Session,
    name: str,
    email: str,
    password: str,
    password_confirm: str | None = None,
) -> list[str]:
    """Validate a sign-up payload. Returns list of user-facing errors."""
    if not name or not email or not password:
        return [MISSING_FIELDS_ERROR]
    errors = []
    if not is_valid_email(email):
        errors.append("Invalid email format.")
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    elif password_confirm is not None and password != password_confirm:
        errors.append("Passwords do not match.")
    if not errors and s.query(User.id).filter(User.email == email).first() is not None:
        errors.append(DUPLICATE_EMAIL_ERROR)
    return errors


def register_user(s: Session, *, name: str, email: str, password: str) -> User:
    """
    Create the account. The unique constraint on users.email is the source of truth;
    a concurrent duplicate surfaces as DuplicateEmailError.
    """
    user = User(
        name=name,
        email=email,
        password_hash=generate_password_hash(password),
        is_active=True,
    )
    s.add(user)
    try:
        s.flush()
    except IntegrityError as e:
        s.rollback()
        raise DuplicateEmailError(DUPLICATE_EMAIL_ERROR) from e

    record_event(s, actor=user, action="auth.register", entity_type="User", entity_id=str(user.id))
    return user


def authenticate(s: Session, email: str, password: str) -> User | None:
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user or not user.is_active or not check_password_hash(user.password_hash, password):
        record_event(
            s,
            actor=None,
            action="auth.login_failed",
            entity_type="User",
            entity_id=email,
            reason="Invalid credentials",
            metadata={"email": email},
        )
        return None
    return user


def start_session(s: Session, user: User) -> None:
    session.clear()
    session["user_id"] = user.id
    session.permanent = True
    user.last_login_at = datetime.utcnow()
    g.current_user = user
    record_event(s, actor=user, action="auth.login", entity_type="User", entity_id=str(user.id))


def end_session(s: Session) -> None:
    user = getattr(g, "current_user", None)
    if user:
        record_event(s, actor=user, action="auth.logout", entity_type="User", entity_id=str(user.id))
    session.pop("user_id", None)
    g.current_user = None


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/static/", "/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    try:
        s = db_session()
        user = s.get(User, int(user_id))
    except (SQLAlchemyError, ValueError) as e:
        current_app.logger.error("load_current_user DB error (clearing session): %s", e)
        session.pop("user_id", None)
        g.current_user = None
        return

    if not user or not user.is_active:
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user


# ---------- Views ----------
@bp.get("/register")
def register_get():
    if getattr(g, "current_user", None):
        return redirect(url_for("vocabulary.dashboard"))
    return render_template("auth/register.html")


@bp.post("/register")
def register_post():
    name = (request.form.get("name") or "").strip()
    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    password_confirm = request.form.get("password_confirm")

    s = db_session()
    errors = validate_registration(s, name, email, password, password_confirm or None)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("auth/register.html", name=name, email=email), 400

    try:
        register_user(s, name=name, email=email, password=password)
        s.commit()
    except DuplicateEmailError as e:
        flash(str(e), "danger")
        return render_template("auth/register.html", name=name, email=email), 400

    current_app.logger.info("Registered user email=%s request_id=%s", email, getattr(g, "request_id", None))
    flash("Account created. Please sign in.", "success")
    return redirect(url_for("auth.login_get"))


@bp.get("/login")
def login_get():
    nxt = (request.args.get("next") or "").strip()
    return render_template("auth/login.html", next=nxt)


@bp.post("/login")
def login_post():
    email = normalize_email(request.form.get("email"))
    password = request.form.get("password") or ""
    nxt = (request.form.get("next") or "").strip()
    ip = request.remote_addr or "unknown"

    if not email or not password:
        flash(MISSING_FIELDS_ERROR, "danger")
        return redirect(url_for("auth.login_get", next=nxt or None))

    if check_rate_limit(ip):
        flash(RATE_LIMITED_ERROR, "danger")
        return redirect(url_for("auth.login_get"))

    record_attempt(ip)

    try:
        s = db_session()
        user = authenticate(s, email, password)
        if user is None:
            s.commit()
            flash(f"{INVALID_CREDENTIALS_ERROR}.", "danger")
            return redirect(url_for("auth.login_get", next=nxt or None))

        start_session(s, user)
        clear_attempts(ip)
        s.commit()
    except Exception:
        current_app.logger.exception("Login POST crashed (email=%s request_id=%s)", email, getattr(g, "request_id", None))
        raise

    return redirect(safe_next_path(nxt) or url_for("vocabulary.dashboard"))


@bp.route("/logout", methods=["GET", "POST"])
def logout():
    s = db_session()
    end_session(s)
    s.commit()
    return redirect(url_for("routes.index"))
