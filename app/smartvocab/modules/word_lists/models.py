from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.smartvocab.models import Base


class WordList(Base):
    __tablename__ = "word_lists"
    __table_args__ = (
        Index("idx_word_lists_owner", "owner_user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    owner_user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    words: Mapped[list["ListWord"]] = relationship(
        "ListWord",
        back_populates="word_list",
        cascade="all, delete-orphan",
        order_by="ListWord.position",
        lazy="selectin",
    )


class ListWord(Base):
    __tablename__ = "list_words"
    __table_args__ = (
        Index("idx_list_words_list_position", "list_id", "position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    list_id: Mapped[int] = mapped_column(ForeignKey("word_lists.id", ondelete="CASCADE"), nullable=False)
    word: Mapped[str] = mapped_column(String(255), nullable=False)
    translation: Mapped[str] = mapped_column(String(255), nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    word_list: Mapped[WordList] = relationship("WordList", back_populates="words")
    answers: Mapped[list["PracticeAnswer"]] = relationship(
        "PracticeAnswer",
        back_populates="list_word",
        cascade="all, delete-orphan",
        lazy="select",
    )


class PracticeAnswer(Base):
    """One flashcard answer during practice (self-assessed correct / incorrect)."""

    __tablename__ = "practice_answers"
    __table_args__ = (
        Index("idx_practice_answers_user_word", "user_id", "list_word_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    list_word_id: Mapped[int] = mapped_column(ForeignKey("list_words.id", ondelete="CASCADE"), nullable=False)
    correct: Mapped[bool] = mapped_column(Boolean, nullable=False)
    answered_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    list_word: Mapped[ListWord] = relationship("ListWord", back_populates="answers")
