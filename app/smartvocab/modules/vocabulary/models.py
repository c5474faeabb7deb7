from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.smartvocab.models import Base


class VocabularyCard(Base):
    __tablename__ = "vocabulary_cards"
    __table_args__ = (
        Index("idx_vocabulary_cards_level_position", "level", "position"),
    )

    # Slug ids ("a1-1") are stable across reseeds and used by the client for viewed markers.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    english: Mapped[str] = mapped_column(String(255), nullable=False)
    czech: Mapped[str] = mapped_column(String(255), nullable=False)
    level: Mapped[str] = mapped_column(String(2), nullable=False)  # A1..C2
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    views: Mapped[list["CardView"]] = relationship(
        "CardView",
        back_populates="card",
        cascade="all, delete-orphan",
        lazy="select",
    )

    def to_dict(self) -> dict:
        return {"id": self.id, "english": self.english, "czech": self.czech, "level": self.level}


class CardView(Base):
    __tablename__ = "card_views"
    __table_args__ = (
        UniqueConstraint("user_id", "card_id", name="uq_card_views_user_card"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    card_id: Mapped[str] = mapped_column(ForeignKey("vocabulary_cards.id", ondelete="CASCADE"), nullable=False)
    viewed_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    card: Mapped[VocabularyCard] = relationship("VocabularyCard", back_populates="views", lazy="selectin")
