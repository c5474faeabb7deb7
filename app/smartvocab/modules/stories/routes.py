from __future__ import annotations

from flask import Blueprint, abort, current_app, send_file

from app.smartvocab.db import db_session
from app.smartvocab.modules.stories.service import get_story
from app.smartvocab.storage import StorageError, storage_from_config

bp = Blueprint("stories", __name__)


@bp.get("/stories/<int:story_id>/audio")
def story_audio(story_id: int):
    s = db_session()
    story = get_story(s, story_id)
    if not story or not story.audio_key:
        abort(404)
    storage = storage_from_config(current_app.config)
    try:
        fobj = storage.open(story.audio_key)
    except StorageError:
        current_app.logger.warning("Story audio missing in storage (story_id=%s key=%s)", story.id, story.audio_key)
        abort(404)
    return send_file(
        fobj,
        mimetype=story.audio_content_type or "audio/mpeg",
        download_name=story.audio_key.rsplit("/", 1)[-1],
        conditional=False,
    )
