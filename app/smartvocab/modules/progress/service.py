from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy import func

from app.smartvocab.constants import LEVELS, PROGRESS_PRIMARY_MIN, PROGRESS_SKY_MIN, Level

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.smartvocab.models import User


@dataclass(frozen=True)
class LevelProgress:
    level: Level
    viewed: int
    total: int

    @property
    def percent(self) -> int:
        return percent_of(self.viewed, self.total)

    @property
    def color(self) -> str:
        return progress_color(self.percent)


@dataclass(frozen=True)
class LearningSummary:
    words_learned: int
    active_lists: int
    mastery_rate: int


def percent_of(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round(100 * part / whole)


def progress_color(percent: int) -> str:
    """Badge colour for a progress percentage."""
    if percent >= PROGRESS_PRIMARY_MIN:
        return "primary"
    if percent >= PROGRESS_SKY_MIN:
        return "sky"
    return "green"


def level_progress(s: "Session", user: "User") -> list[LevelProgress]:
    from app.smartvocab.modules.vocabulary.models import CardView, VocabularyCard

    totals = dict(
        s.query(VocabularyCard.level, func.count(VocabularyCard.id)).group_by(VocabularyCard.level).all()
    )
    viewed = dict(
        s.query(VocabularyCard.level, func.count(CardView.id))
        .join(CardView, CardView.card_id == VocabularyCard.id)
        .filter(CardView.user_id == user.id)
        .group_by(VocabularyCard.level)
        .all()
    )
    return [
        LevelProgress(level=level, viewed=viewed.get(level.id, 0), total=totals.get(level.id, 0))
        for level in LEVELS
    ]


def learning_summary(s: "Session", user: "User") -> LearningSummary:
    from app.smartvocab.modules.vocabulary.models import CardView
    from app.smartvocab.modules.word_lists.models import ListWord, PracticeAnswer, WordList

    cards_viewed = s.query(func.count(CardView.id)).filter(CardView.user_id == user.id).scalar() or 0
    list_words_known = (
        s.query(func.count(func.distinct(PracticeAnswer.list_word_id)))
        .filter(PracticeAnswer.user_id == user.id, PracticeAnswer.correct.is_(True))
        .scalar()
        or 0
    )
    active_lists = (
        s.query(func.count(func.distinct(WordList.id)))
        .join(ListWord, ListWord.list_id == WordList.id)
        .filter(WordList.owner_user_id == user.id)
        .scalar()
        or 0
    )
    answers = s.query(func.count(PracticeAnswer.id)).filter(PracticeAnswer.user_id == user.id)
    answered = answers.scalar() or 0
    correct = answers.filter(PracticeAnswer.correct.is_(True)).scalar() or 0
    return LearningSummary(
        words_learned=int(cards_viewed) + int(list_words_known),
        active_lists=int(active_lists),
        mastery_rate=percent_of(int(correct), int(answered)),
    )
