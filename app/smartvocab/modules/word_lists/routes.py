from __future__ import annotations

from flask import Blueprint, abort, flash, g, redirect, render_template, request, session, url_for

from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.modules.word_lists.service import (
    create_word_list,
    delete_word_list,
    get_owned_list,
    list_progress,
    parse_words_from_form,
    record_answer,
    update_word_list,
    validate_list_payload,
)
from app.smartvocab.rbac import login_required

bp = Blueprint("word_lists", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _owned_or_404(list_id: int):
    word_list = get_owned_list(db_session(), _current_user(), list_id)
    if word_list is None:
        abort(404)
    return word_list


# ---------- Practice state (signed session cookie) ----------
def _practice_state(list_id: int) -> dict:
    states = session.get("practice") or {}
    state = states.get(str(list_id)) or {}
    return {
        "index": int(state.get("index", 0)),
        "correct": int(state.get("correct", 0)),
        "incorrect": int(state.get("incorrect", 0)),
    }


def _save_practice_state(list_id: int, state: dict | None) -> None:
    states = dict(session.get("practice") or {})
    if state is None:
        states.pop(str(list_id), None)
    else:
        states[str(list_id)] = state
    session["practice"] = states
    session.modified = True


# ---------- Create ----------
@bp.get("/new")
@login_required
def lists_new_get():
    return render_template("lists/form.html", word_list=None, title="", words=[{}])


@bp.post("/new")
@login_required
def lists_new_post():
    s = db_session()
    title = (request.form.get("title") or "").strip()
    words = parse_words_from_form(request.form)
    errors = validate_list_payload(title, words)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("lists/form.html", word_list=None, title=title, words=words or [{}]), 400

    word_list = create_word_list(s, _current_user(), title, words)
    s.commit()
    flash(f"List “{word_list.title}” created.", "success")
    return redirect(url_for("vocabulary.dashboard"))


# ---------- Edit ----------
@bp.get("/<int:list_id>/edit")
@login_required
def lists_edit_get(list_id: int):
    word_list = _owned_or_404(list_id)
    words = [{"word": w.word, "translation": w.translation, "image_url": w.image_url or ""} for w in word_list.words]
    return render_template("lists/form.html", word_list=word_list, title=word_list.title, words=words or [{}])


@bp.post("/<int:list_id>/edit")
@login_required
def lists_edit_post(list_id: int):
    s = db_session()
    word_list = _owned_or_404(list_id)
    title = (request.form.get("title") or "").strip()
    words = parse_words_from_form(request.form)
    errors = validate_list_payload(title, words)
    if errors:
        for e in errors:
            flash(e, "danger")
        return render_template("lists/form.html", word_list=word_list, title=title, words=words or [{}]), 400

    update_word_list(s, word_list, _current_user(), title, words)
    s.commit()
    _save_practice_state(list_id, None)
    flash("List updated.", "success")
    return redirect(url_for("vocabulary.dashboard"))


@bp.post("/<int:list_id>/delete")
@login_required
def lists_delete(list_id: int):
    s = db_session()
    word_list = _owned_or_404(list_id)
    delete_word_list(s, word_list, _current_user())
    s.commit()
    _save_practice_state(list_id, None)
    flash("List deleted.", "success")
    return redirect(url_for("vocabulary.dashboard"))


# ---------- Practice ----------
@bp.get("/<int:list_id>/practice")
@login_required
def practice_get(list_id: int):
    s = db_session()
    word_list = _owned_or_404(list_id)
    words = word_list.words
    if not words:
        flash("This list has no words yet.", "info")
        return redirect(url_for("word_lists.lists_edit_get", list_id=list_id))

    state = _practice_state(list_id)
    if state["index"] >= len(words):
        return render_template(
            "lists/complete.html",
            word_list=word_list,
            state=state,
            total=len(words),
            progress=list_progress(s, _current_user(), word_list),
        )
    return render_template(
        "lists/practice.html",
        word_list=word_list,
        word=words[state["index"]],
        state=state,
        total=len(words),
    )


@bp.post("/<int:list_id>/practice")
@login_required
def practice_post(list_id: int):
    s = db_session()
    word_list = _owned_or_404(list_id)
    words = word_list.words
    state = _practice_state(list_id)

    answer = (request.form.get("answer") or "").strip().lower()
    if answer not in ("correct", "incorrect"):
        abort(400)
    if state["index"] >= len(words):
        return redirect(url_for("word_lists.practice_get", list_id=list_id))

    # Guard against a stale form posting for a different card (double submit / back button).
    word_id = request.form.get("word_id", type=int)
    current = words[state["index"]]
    if word_id is not None and word_id != current.id:
        return redirect(url_for("word_lists.practice_get", list_id=list_id))

    record_answer(s, _current_user(), current, answer == "correct")
    s.commit()

    state[answer] += 1
    state["index"] += 1
    _save_practice_state(list_id, state)
    return redirect(url_for("word_lists.practice_get", list_id=list_id))


@bp.post("/<int:list_id>/practice/restart")
@login_required
def practice_restart(list_id: int):
    _owned_or_404(list_id)
    _save_practice_state(list_id, None)
    return redirect(url_for("word_lists.practice_get", list_id=list_id))
