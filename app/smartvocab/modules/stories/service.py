from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from flask import url_for
from werkzeug.utils import secure_filename

from app.smartvocab.audit import record_event
from app.smartvocab.constants import AUDIO_EXTENSIONS, AUDIO_MAX_BYTES

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.smartvocab.models import User
    from app.smartvocab.modules.stories.models import Story
    from app.smartvocab.storage import Storage

logger = logging.getLogger(__name__)

SEED_STORIES: tuple[tuple[str, str], ...] = (
    (
        "A Day at the Park",
        "It was a sunny day. Anna went to the park with her dog. They played with a ball and met new friends.",
    ),
    (
        "The Lost Key",
        "Tom could not find his key. He looked everywhere. Finally, he found it in his pocket.",
    ),
    (
        "Holiday Trip",
        "Our family went to the mountains. We hiked, took photos, and enjoyed the fresh air.",
    ),
    (
        "Birthday Surprise",
        "Sara's friends organized a surprise party. She was very happy and thanked everyone.",
    ),
)


def list_stories(s: "Session") -> list["Story"]:
    from app.smartvocab.modules.stories.models import Story

    return s.query(Story).order_by(Story.position.asc(), Story.id.asc()).all()


def get_story(s: "Session", story_id: int) -> "Story | None":
    from app.smartvocab.modules.stories.models import Story

    return s.get(Story, story_id)


def story_payload(story: "Story") -> dict:
    """JSON shape consumed by the stories player."""
    audio_url = url_for("stories.story_audio", story_id=story.id) if story.audio_key else None
    return {
        "id": str(story.id),
        "title": story.title,
        "text": story.text,
        "audioUrl": audio_url,
    }


def validate_story_payload(payload: dict) -> list[str]:
    errors = []
    if not (payload.get("title") or "").strip():
        errors.append("Title is required.")
    if not (payload.get("text") or "").strip():
        errors.append("Text is required.")
    return errors


def validate_audio(filename: str, size_bytes: int) -> list[str]:
    errors = []
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in AUDIO_EXTENSIONS:
        errors.append(f"Audio must be one of: {', '.join(sorted(AUDIO_EXTENSIONS))}")
    if size_bytes <= 0:
        errors.append("Audio file is empty.")
    elif size_bytes > AUDIO_MAX_BYTES:
        errors.append("Audio file too large. Maximum size is 10MB.")
    return errors


def build_audio_key(story_id: int, filename: str) -> str:
    """Deterministic storage key for a story recording."""
    safe_filename = secure_filename(filename) or "audio.bin"
    return f"stories/{story_id}/{safe_filename}"


def _next_position(s: "Session") -> int:
    from sqlalchemy import func

    from app.smartvocab.modules.stories.models import Story

    return (s.query(func.max(Story.position)).scalar() or 0) + 1


def create_story(s: "Session", payload: dict, user: "User | None") -> "Story":
    from app.smartvocab.modules.stories.models import Story

    story = Story(
        title=(payload.get("title") or "").strip(),
        text=(payload.get("text") or "").strip(),
        position=_next_position(s),
        created_by_user_id=user.id if user else None,
    )
    s.add(story)
    s.flush()

    record_event(
        s,
        actor=user,
        action="story.create",
        entity_type="Story",
        entity_id=str(story.id),
        metadata={"title": story.title},
    )
    return story


def attach_audio(
    s: "Session",
    storage: "Storage",
    story: "Story",
    file_bytes: bytes,
    filename: str,
    content_type: str | None,
    user: "User",
) -> str:
    """
    Store the recording and point the story at it.
    A previous recording stays in storage; the caller removes it once the new row is committed.
    """
    key = build_audio_key(story.id, filename)
    storage.put_bytes(key, file_bytes, content_type=content_type)
    story.audio_key = key
    story.audio_content_type = content_type or "audio/mpeg"

    record_event(
        s,
        actor=user,
        action="story.audio_upload",
        entity_type="Story",
        entity_id=str(story.id),
        metadata={"storage_key": key, "size_bytes": len(file_bytes)},
    )
    return key


def delete_story(s: "Session", story: "Story", user: "User") -> None:
    """Audit and delete the row. The audio object is left for the caller to remove after commit."""
    record_event(
        s,
        actor=user,
        action="story.delete",
        entity_type="Story",
        entity_id=str(story.id),
        metadata={"title": story.title},
    )
    s.delete(story)


def seed_stories(s: "Session") -> int:
    """Insert the starter stories by title (idempotent). Returns number added."""
    from app.smartvocab.modules.stories.models import Story

    existing = {row[0] for row in s.query(Story.title).all()}
    added = 0
    for position, (title, text) in enumerate(SEED_STORIES, start=1):
        if title in existing:
            continue
        s.add(Story(title=title, text=text, position=position))
        added += 1
    s.flush()
    if added:
        logger.info("Seeded %s stories", added)
    return added
