from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from app.smartvocab.audit import record_event
from app.smartvocab.modules.progress.service import percent_of, progress_color
from app.smartvocab.utils import clean_text, is_http_url

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from werkzeug.datastructures import MultiDict
    from app.smartvocab.models import User
    from app.smartvocab.modules.word_lists.models import ListWord, PracticeAnswer, WordList


@dataclass(frozen=True)
class ListSummary:
    word_list: "WordList"
    total_words: int
    progress: int

    @property
    def color(self) -> str:
        return progress_color(self.progress)


def parse_words_from_form(form: "MultiDict") -> list[dict]:
    """Zip the repeated word/translation/image_url inputs; fully blank rows are dropped."""
    words = form.getlist("word")
    translations = form.getlist("translation")
    images = form.getlist("image_url")
    rows = []
    for i in range(max(len(words), len(translations), len(images))):
        row = {
            "word": (words[i] if i < len(words) else "").strip(),
            "translation": (translations[i] if i < len(translations) else "").strip(),
            "image_url": (images[i] if i < len(images) else "").strip(),
        }
        if any(row.values()):
            rows.append(row)
    return rows


def validate_list_payload(title: str | None, words: list[dict]) -> list[str]:
    errors = []
    if not (title or "").strip():
        errors.append("Title is required.")
    if not words:
        errors.append("Add at least one word.")
    for idx, row in enumerate(words, start=1):
        if not (row.get("word") or "").strip() or not (row.get("translation") or "").strip():
            errors.append(f"Word {idx}: word and translation are required.")
        image_url = (row.get("image_url") or "").strip()
        if image_url and not is_http_url(image_url):
            errors.append(f"Word {idx}: image URL must start with http:// or https://.")
    return errors


def user_word_lists(s: "Session", user: "User") -> list["WordList"]:
    from app.smartvocab.modules.word_lists.models import WordList

    return (
        s.query(WordList)
        .filter(WordList.owner_user_id == user.id)
        .order_by(WordList.created_at.asc(), WordList.id.asc())
        .all()
    )


def get_owned_list(s: "Session", user: "User", list_id: int) -> "WordList | None":
    """Lists are private: another user's list looks the same as a missing one."""
    from app.smartvocab.modules.word_lists.models import WordList

    word_list = s.get(WordList, list_id)
    if word_list is None or word_list.owner_user_id != user.id:
        return None
    return word_list


def create_word_list(s: "Session", user: "User", title: str, words: list[dict]) -> "WordList":
    from app.smartvocab.modules.word_lists.models import ListWord, WordList

    now = datetime.utcnow()
    word_list = WordList(owner_user_id=user.id, title=title.strip(), created_at=now, updated_at=now)
    for position, row in enumerate(words, start=1):
        word_list.words.append(
            ListWord(
                word=row["word"].strip(),
                translation=row["translation"].strip(),
                image_url=clean_text(row.get("image_url")),
                position=position,
            )
        )
    s.add(word_list)
    s.flush()

    record_event(
        s,
        actor=user,
        action="word_list.create",
        entity_type="WordList",
        entity_id=str(word_list.id),
        metadata={"title": word_list.title, "words": len(word_list.words)},
    )
    return word_list


def update_word_list(s: "Session", word_list: "WordList", user: "User", title: str, words: list[dict]) -> "WordList":
    """
    Replace the list contents. Words whose (word, translation) pair survives keep their
    id, so their practice history is preserved.
    """
    from app.smartvocab.modules.word_lists.models import ListWord

    existing = {(w.word, w.translation): w for w in word_list.words}
    kept: list[ListWord] = []
    for position, row in enumerate(words, start=1):
        key = (row["word"].strip(), row["translation"].strip())
        lw = existing.pop(key, None)
        if lw is None:
            lw = ListWord(word=key[0], translation=key[1])
        lw.image_url = clean_text(row.get("image_url"))
        lw.position = position
        kept.append(lw)

    old_title = word_list.title
    word_list.title = title.strip()
    word_list.words = kept
    word_list.updated_at = datetime.utcnow()
    s.flush()

    record_event(
        s,
        actor=user,
        action="word_list.edit",
        entity_type="WordList",
        entity_id=str(word_list.id),
        metadata={
            "title": {"old": old_title, "new": word_list.title},
            "removed_words": sorted(w for w, _ in existing),
            "words": len(kept),
        },
    )
    return word_list


def delete_word_list(s: "Session", word_list: "WordList", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="word_list.delete",
        entity_type="WordList",
        entity_id=str(word_list.id),
        metadata={"title": word_list.title},
    )
    s.delete(word_list)


def record_answer(s: "Session", user: "User", list_word: "ListWord", correct: bool) -> "PracticeAnswer":
    from app.smartvocab.modules.word_lists.models import PracticeAnswer

    answer = PracticeAnswer(user_id=user.id, list_word_id=list_word.id, correct=bool(correct))
    s.add(answer)
    s.flush()
    return answer


def list_progress(s: "Session", user: "User", word_list: "WordList") -> int:
    """Percent of the list's words whose most recent answer was correct."""
    from app.smartvocab.modules.word_lists.models import PracticeAnswer

    word_ids = [w.id for w in word_list.words]
    if not word_ids:
        return 0
    answers = (
        s.query(PracticeAnswer.list_word_id, PracticeAnswer.correct)
        .filter(PracticeAnswer.user_id == user.id, PracticeAnswer.list_word_id.in_(word_ids))
        .order_by(PracticeAnswer.answered_at.asc(), PracticeAnswer.id.asc())
        .all()
    )
    latest: dict[int, bool] = {}
    for word_id, correct in answers:
        latest[word_id] = correct
    known = sum(1 for ok in latest.values() if ok)
    return percent_of(known, len(word_ids))


def list_summaries(s: "Session", user: "User") -> list[ListSummary]:
    return [
        ListSummary(word_list=wl, total_words=len(wl.words), progress=list_progress(s, user, wl))
        for wl in user_word_lists(s, user)
    ]
