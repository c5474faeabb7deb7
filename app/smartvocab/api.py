"""
JSON API used by the browser widgets and by non-HTML clients.

Authentication shares the signed session cookie with the HTML views.
"""
from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import Blueprint, current_app, g, jsonify, request

from app.smartvocab.auth import (
    DUPLICATE_EMAIL_ERROR,
    INVALID_CREDENTIALS_ERROR,
    MISSING_FIELDS_ERROR,
    RATE_LIMITED_ERROR,
    DuplicateEmailError,
    authenticate,
    check_rate_limit,
    clear_attempts,
    end_session,
    record_attempt,
    register_user,
    start_session,
    validate_registration,
)
from app.smartvocab.constants import SVG_COLORS, SVG_WORDS
from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.modules.games.service import flying_words, next_svg_word, random_level
from app.smartvocab.modules.stories.service import list_stories, story_payload
from app.smartvocab.modules.vocabulary.service import (
    get_card,
    get_level,
    get_levels,
    get_vocabulary_by_level,
    mark_card_viewed,
    viewed_card_ids,
)
from app.smartvocab.utils import normalize_email

bp = Blueprint("api", __name__)


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def api_login_required(fn: Callable[..., Any]) -> Callable[..., Any]:
    @wraps(fn)
    def wrapped(*args: Any, **kwargs: Any):
        user: User | None = getattr(g, "current_user", None)
        if not user or not user.is_active:
            return jsonify({"message": "Unauthorized"}), 401
        return fn(*args, **kwargs)

    return wrapped


# ---------- Auth ----------
@bp.post("/auth/register")
def register():
    data = _json_body()
    name = str(data.get("name") or "").strip()
    email = normalize_email(str(data.get("email") or ""))
    password = str(data.get("password") or "")

    s = db_session()
    errors = validate_registration(s, name, email, password)
    if errors:
        status = 409 if DUPLICATE_EMAIL_ERROR in errors else 400
        return _error(errors[0], status)
    try:
        user = register_user(s, name=name, email=email, password=password)
        s.commit()
    except DuplicateEmailError as e:
        return _error(str(e), 409)
    return jsonify(user.to_public_dict()), 201


@bp.post("/auth/login")
def login():
    data = _json_body()
    email = normalize_email(str(data.get("email") or ""))
    password = str(data.get("password") or "")
    ip = request.remote_addr or "unknown"

    if not email or not password:
        return _error(MISSING_FIELDS_ERROR, 400)
    if check_rate_limit(ip):
        return _error(RATE_LIMITED_ERROR, 429)
    record_attempt(ip)

    s = db_session()
    user = authenticate(s, email, password)
    if user is None:
        s.commit()
        return _error(INVALID_CREDENTIALS_ERROR, 401)

    start_session(s, user)
    clear_attempts(ip)
    s.commit()
    current_app.logger.info("API login user_id=%s request_id=%s", user.id, getattr(g, "request_id", None))
    return jsonify({"user": user.to_public_dict()})


@bp.post("/auth/logout")
def logout():
    s = db_session()
    end_session(s)
    s.commit()
    return jsonify({"message": "Logged out successfully"})


@bp.get("/auth/me")
@api_login_required
def me():
    return jsonify(g.current_user.to_public_dict())


# ---------- Vocabulary ----------
@bp.get("/levels")
def levels():
    return jsonify([level._asdict() for level in get_levels()])


@bp.get("/levels/<level_id>/cards")
@api_login_required
def level_cards(level_id: str):
    level = get_level(level_id)
    if level is None:
        return _error("Unknown level", 404)
    s = db_session()
    cards = get_vocabulary_by_level(s, level.id)
    viewed = viewed_card_ids(s, g.current_user, [c.id for c in cards])
    return jsonify([{**c.to_dict(), "viewed": c.id in viewed} for c in cards])


@bp.post("/cards/<card_id>/view")
@api_login_required
def card_view(card_id: str):
    s = db_session()
    card = get_card(s, card_id)
    if card is None:
        return _error("Unknown card", 404)
    mark_card_viewed(s, g.current_user, card)
    s.commit()
    return jsonify({"card_id": card.id, "viewed": True})


# ---------- Stories ----------
@bp.get("/stories")
def stories():
    s = db_session()
    return jsonify([story_payload(st) for st in list_stories(s)])


# ---------- Games ----------
@bp.get("/games/flying-words")
@api_login_required
def games_flying_words():
    requested = request.args.get("level")
    level = get_level(requested) if requested else None
    if requested and level is None:
        return _error("Unknown level", 404)
    level_id = level.id if level else random_level()
    words = [c.english for c in get_vocabulary_by_level(db_session(), level_id)]
    return jsonify({"level": level_id, "words": [w.to_dict() for w in flying_words(words)]})


@bp.get("/games/svg-word")
def games_svg_word():
    current = (request.args.get("word") or "").strip() or None
    color = request.args.get("color", default=0, type=int) or 0
    if not 0 <= color < len(SVG_COLORS):
        return _error(f"color must be between 0 and {len(SVG_COLORS) - 1}", 400)
    if current is not None and current not in SVG_WORDS:
        current = None
    return jsonify(next_svg_word(current, color).to_dict())
