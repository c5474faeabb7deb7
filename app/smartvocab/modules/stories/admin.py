from __future__ import annotations

from flask import Blueprint, abort, current_app, flash, g, redirect, render_template, request, url_for

from app.smartvocab.db import db_session
from app.smartvocab.models import User
from app.smartvocab.modules.stories.service import (
    attach_audio,
    create_story,
    delete_story,
    get_story,
    list_stories,
    validate_audio,
    validate_story_payload,
)
from app.smartvocab.rbac import require_permission
from app.smartvocab.storage import storage_from_config

bp = Blueprint("stories_admin", __name__)


def _current_user() -> User:
    u = getattr(g, "current_user", None)
    if not u:
        raise RuntimeError("No current user")
    return u


def _uploaded_audio() -> tuple[bytes, str, str | None] | None:
    f = request.files.get("audio")
    if not f or not f.filename:
        return None
    return f.read(), f.filename, f.mimetype


@bp.get("/stories")
@require_permission("stories.view")
def stories_list():
    s = db_session()
    return render_template("admin/stories/list.html", stories=list_stories(s))


@bp.get("/stories/new")
@require_permission("stories.edit")
def stories_new_get():
    return render_template("admin/stories/new.html")


@bp.post("/stories/new")
@require_permission("stories.edit")
def stories_new_post():
    s = db_session()
    u = _current_user()
    payload = {"title": request.form.get("title"), "text": request.form.get("text")}
    audio = _uploaded_audio()

    errors = validate_story_payload(payload)
    if audio:
        errors.extend(validate_audio(audio[1], len(audio[0])))
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("stories_admin.stories_new_get"))

    story = create_story(s, payload, u)
    if audio:
        attach_audio(s, storage_from_config(current_app.config), story, audio[0], audio[1], audio[2], u)
    s.commit()
    flash("Story created.", "success")
    return redirect(url_for("stories_admin.stories_list"))


@bp.post("/stories/<int:story_id>/audio")
@require_permission("stories.edit")
def stories_upload_audio(story_id: int):
    s = db_session()
    story = get_story(s, story_id)
    if not story:
        abort(404)

    audio = _uploaded_audio()
    if not audio:
        flash("Choose an audio file to upload.", "danger")
        return redirect(url_for("stories_admin.stories_list"))
    errors = validate_audio(audio[1], len(audio[0]))
    if errors:
        for e in errors:
            flash(e, "danger")
        return redirect(url_for("stories_admin.stories_list"))

    storage = storage_from_config(current_app.config)
    old_key = story.audio_key
    key = attach_audio(s, storage, story, audio[0], audio[1], audio[2], _current_user())
    s.commit()
    if old_key and old_key != key:
        storage.delete(old_key)
    flash("Audio uploaded.", "success")
    return redirect(url_for("stories_admin.stories_list"))


@bp.post("/stories/<int:story_id>/delete")
@require_permission("stories.edit")
def stories_delete(story_id: int):
    s = db_session()
    story = get_story(s, story_id)
    if not story:
        abort(404)
    audio_key = story.audio_key
    delete_story(s, story, _current_user())
    s.commit()
    if audio_key:
        storage_from_config(current_app.config).delete(audio_key)
    flash("Story deleted.", "success")
    return redirect(url_for("stories_admin.stories_list"))
