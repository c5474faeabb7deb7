from __future__ import annotations

from flask import Blueprint, abort, g, redirect, render_template, request, url_for

from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.modules.progress.service import learning_summary, level_progress
from app.smartvocab.modules.vocabulary.service import (
    get_card,
    get_level,
    get_vocabulary_by_level,
    mark_card_viewed,
    viewed_card_ids,
)
from app.smartvocab.modules.word_lists.service import list_summaries
from app.smartvocab.rbac import login_required

bp = Blueprint("vocabulary", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


@bp.get("/dashboard")
@login_required
def dashboard():
    s = db_session()
    u = _current_user()
    return render_template(
        "dashboard/index.html",
        user=u,
        levels=level_progress(s, u),
        summary=learning_summary(s, u),
        word_lists=list_summaries(s, u),
    )


@bp.get("/dashboard/level/<level_id>")
@login_required
def level_detail(level_id: str):
    level = get_level(level_id)
    if level is None:
        abort(404)
    s = db_session()
    cards = get_vocabulary_by_level(s, level.id)
    viewed = viewed_card_ids(s, _current_user(), [c.id for c in cards])
    return render_template("dashboard/level.html", level=level, cards=cards, viewed=viewed)


@bp.post("/dashboard/cards/<card_id>/viewed")
@login_required
def card_viewed(card_id: str):
    """No-JS fallback for the flip card: record the view and show the back."""
    s = db_session()
    card = get_card(s, card_id)
    if card is None:
        abort(404)
    mark_card_viewed(s, _current_user(), card)
    s.commit()
    return redirect(url_for("vocabulary.level_detail", level_id=card.level, flipped=card.id) + f"#card-{card.id}")


@bp.get("/dashboard/level")
@login_required
def level_redirect():
    level = get_level(request.args.get("level"))
    if level is None:
        return redirect(url_for("vocabulary.dashboard"))
    return redirect(url_for("vocabulary.level_detail", level_id=level.id))
