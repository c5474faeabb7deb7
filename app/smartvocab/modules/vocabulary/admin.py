from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, url_for

from app.smartvocab.constants import LEVEL_IDS
from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.modules.vocabulary.service import (
    count_cards_by_level,
    create_card,
    delete_card,
    get_card,
    get_level,
    get_levels,
    get_vocabulary_by_level,
    update_card,
    validate_card_payload,
)
from app.smartvocab.rbac import require_permission

bp = Blueprint("vocabulary_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _card_payload() -> dict:
    return {
        "english": request.form.get("english"),
        "czech": request.form.get("czech"),
        "level": request.form.get("level"),
        "position": request.form.get("position"),
    }


# ---------- List ----------
@bp.get("/cards")
@require_permission("cards.view")
def cards_list():
    s = db_session()
    level = get_level(request.args.get("level")) or get_levels()[0]
    return render_template(
        "admin/cards/list.html",
        levels=get_levels(),
        level=level,
        cards=get_vocabulary_by_level(s, level.id),
        counts=count_cards_by_level(s),
    )


# ---------- New ----------
@bp.get("/cards/new")
@require_permission("cards.edit")
def cards_new_get():
    level = get_level(request.args.get("level"))
    return render_template("admin/cards/form.html", card=None, level_ids=LEVEL_IDS, level=level.id if level else "A1")


@bp.post("/cards/new")
@require_permission("cards.edit")
def cards_new_post():
    s = db_session()
    payload = _card_payload()
    errors = validate_card_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("vocabulary_admin.cards_new_get", level=payload.get("level")))

    card = create_card(s, payload, _current_user())
    s.commit()
    flash(f"Card {card.id} created.", "success")
    return redirect(url_for("vocabulary_admin.cards_list", level=card.level))


# ---------- Edit ----------
@bp.get("/cards/<card_id>/edit")
@require_permission("cards.edit")
def cards_edit_get(card_id: str):
    s = db_session()
    card = get_card(s, card_id)
    if not card:
        abort(404)
    return render_template("admin/cards/form.html", card=card, level_ids=LEVEL_IDS, level=card.level)


@bp.post("/cards/<card_id>/edit")
@require_permission("cards.edit")
def cards_edit_post(card_id: str):
    s = db_session()
    card = get_card(s, card_id)
    if not card:
        abort(404)

    payload = _card_payload()
    errors = validate_card_payload(payload)
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("vocabulary_admin.cards_edit_get", card_id=card.id))

    update_card(s, card, payload, _current_user())
    s.commit()
    flash("Card updated.", "success")
    return redirect(url_for("vocabulary_admin.cards_list", level=card.level))


# ---------- Delete ----------
@bp.post("/cards/<card_id>/delete")
@require_permission("cards.edit")
def cards_delete(card_id: str):
    s = db_session()
    card = get_card(s, card_id)
    if not card:
        abort(404)
    level = card.level
    delete_card(s, card, _current_user())
    s.commit()
    flash(f"Card {card_id} deleted.", "success")
    return redirect(url_for("vocabulary_admin.cards_list", level=level))
