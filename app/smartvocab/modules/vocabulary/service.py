from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy.exc import IntegrityError

from app.smartvocab.audit import record_event
from app.smartvocab.constants import LEVEL_IDS, LEVELS, Level

if TYPE_CHECKING:
    from sqlalchemy.orm import Session
    from app.smartvocab.models import User
    from app.smartvocab.modules.vocabulary.models import VocabularyCard


def get_levels() -> list[Level]:
    return list(LEVELS)


def get_level(level_id: str | None) -> Level | None:
    key = (level_id or "").strip().upper()
    for level in LEVELS:
        if level.id == key:
            return level
    return None


def get_vocabulary_by_level(s: "Session", level: str) -> list["VocabularyCard"]:
    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    return (
        s.query(VocabularyCard)
        .filter(VocabularyCard.level == level.upper())
        .order_by(VocabularyCard.position.asc(), VocabularyCard.id.asc())
        .all()
    )


def get_card(s: "Session", card_id: str) -> "VocabularyCard | None":
    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    return s.get(VocabularyCard, card_id)


def count_cards_by_level(s: "Session") -> dict[str, int]:
    from sqlalchemy import func

    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    rows = s.query(VocabularyCard.level, func.count(VocabularyCard.id)).group_by(VocabularyCard.level).all()
    counts = {level_id: 0 for level_id in LEVEL_IDS}
    counts.update({level: n for level, n in rows})
    return counts


# ---------- Viewed markers ----------
def viewed_card_ids(s: "Session", user: "User", card_ids: Iterable[str] | None = None) -> set[str]:
    from app.smartvocab.modules.vocabulary.models import CardView

    q = s.query(CardView.card_id).filter(CardView.user_id == user.id)
    if card_ids is not None:
        ids = list(card_ids)
        if not ids:
            return set()
        q = q.filter(CardView.card_id.in_(ids))
    return {row[0] for row in q.all()}


def mark_card_viewed(s: "Session", user: "User", card: "VocabularyCard") -> bool:
    """Record that the user flipped the card. Returns False when it was already viewed."""
    from app.smartvocab.modules.vocabulary.models import CardView

    existing = (
        s.query(CardView.id)
        .filter(CardView.user_id == user.id, CardView.card_id == card.id)
        .first()
    )
    if existing is not None:
        return False
    # A concurrent flip can insert the same (user, card) row between the check and the flush.
    try:
        with s.begin_nested():
            s.add(CardView(user_id=user.id, card_id=card.id))
    except IntegrityError:
        return False
    return True


# ---------- Admin CRUD ----------
def validate_card_payload(payload: dict) -> list[str]:
    errors = []
    if not (payload.get("english") or "").strip():
        errors.append("English word is required.")
    if not (payload.get("czech") or "").strip():
        errors.append("Czech translation is required.")
    level = (payload.get("level") or "").strip().upper()
    if level not in LEVEL_IDS:
        errors.append(f"Invalid level. Must be one of: {', '.join(LEVEL_IDS)}")
    position = (str(payload.get("position") or "")).strip()
    if position:
        try:
            int(position)
        except ValueError:
            errors.append("Position must be a whole number.")
    return errors


def next_card_id(s: "Session", level: str) -> str:
    """Slug ids follow "<level>-<n>", e.g. "b2-10"."""
    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    prefix = f"{level.lower()}-"
    existing = s.query(VocabularyCard.id).filter(VocabularyCard.id.like(f"{prefix}%")).all()
    highest = 0
    for (card_id,) in existing:
        suffix = card_id[len(prefix):]
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return f"{prefix}{highest + 1}"


def _next_position(s: "Session", level: str) -> int:
    from sqlalchemy import func

    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    current = s.query(func.max(VocabularyCard.position)).filter(VocabularyCard.level == level).scalar()
    return (current or 0) + 1


def create_card(s: "Session", payload: dict, user: "User | None") -> "VocabularyCard":
    from app.smartvocab.modules.vocabulary.models import VocabularyCard

    level = (payload.get("level") or "").strip().upper()
    position_raw = (str(payload.get("position") or "")).strip()
    now = datetime.utcnow()
    card = VocabularyCard(
        id=(payload.get("id") or "").strip() or next_card_id(s, level),
        english=(payload.get("english") or "").strip(),
        czech=(payload.get("czech") or "").strip(),
        level=level,
        position=int(position_raw) if position_raw else _next_position(s, level),
        created_at=now,
        updated_at=now,
    )
    s.add(card)
    s.flush()

    record_event(
        s,
        actor=user,
        action="card.create",
        entity_type="VocabularyCard",
        entity_id=card.id,
        metadata={"english": card.english, "level": card.level},
    )
    return card


def update_card(s: "Session", card: "VocabularyCard", payload: dict, user: "User") -> "VocabularyCard":
    changes = {}
    for field in ("english", "czech"):
        new_value = (payload.get(field) or "").strip()
        if new_value and new_value != getattr(card, field):
            changes[field] = {"old": getattr(card, field), "new": new_value}
            setattr(card, field, new_value)

    new_level = (payload.get("level") or "").strip().upper()
    if new_level and new_level != card.level:
        changes["level"] = {"old": card.level, "new": new_level}
        card.level = new_level

    position_raw = (str(payload.get("position") or "")).strip()
    if position_raw and int(position_raw) != card.position:
        changes["position"] = {"old": card.position, "new": int(position_raw)}
        card.position = int(position_raw)

    card.updated_at = datetime.utcnow()
    record_event(
        s,
        actor=user,
        action="card.edit",
        entity_type="VocabularyCard",
        entity_id=card.id,
        metadata={"changes": changes},
    )
    return card


def delete_card(s: "Session", card: "VocabularyCard", user: "User") -> None:
    record_event(
        s,
        actor=user,
        action="card.delete",
        entity_type="VocabularyCard",
        entity_id=card.id,
        metadata={"english": card.english, "level": card.level},
    )
    s.delete(card)


def seed_vocabulary(s: "Session") -> int:
    """Insert the starter deck (idempotent). Returns number of cards added."""
    from app.smartvocab.modules.vocabulary.models import VocabularyCard
    from app.smartvocab.modules.vocabulary.seed import SEED_CARDS

    existing = {row[0] for row in s.query(VocabularyCard.id).all()}
    added = 0
    for level, pairs in SEED_CARDS.items():
        for idx, (english, czech) in enumerate(pairs, start=1):
            card_id = f"{level.lower()}-{idx}"
            if card_id in existing:
                continue
            s.add(VocabularyCard(id=card_id, english=english, czech=czech, level=level, position=idx))
            added += 1
    s.flush()
    return added
