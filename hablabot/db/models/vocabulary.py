"""Vocabulary database models."""
from sqlalchemy import Column, DateTime, Float, Integer, String
from sqlalchemy.sql import func

from hablabot.db.base import Base
from hablabot.db.types import StringList


class VocabularyItemRow(Base):
    """Persisted vocabulary item with its spaced-repetition state."""

    __tablename__ = "vocabulary_items"

    id = Column(String(64), primary_key=True)
    spanish = Column(String(255), nullable=False, index=True)
    english = Column(String(255), nullable=False)
    phonetic = Column(String(255), default="")
    difficulty = Column(Integer, default=1, index=True)
    category = Column(String(100), default="general", index=True)
    examples = Column(StringList, nullable=True)
    tags = Column(StringList, nullable=True)

    repetitions = Column(Integer, default=0, nullable=False)
    easiness_factor = Column(Float, default=2.5, nullable=False)
    interval = Column(Integer, default=0, nullable=False)
    next_review_date = Column(DateTime(timezone=True), index=True)
    last_reviewed = Column(DateTime(timezone=True))
    last_quality = Column(Integer)

    times_correct = Column(Integer, default=0, nullable=False)
    times_incorrect = Column(Integer, default=0, nullable=False)
    mastery_level = Column(Float, default=0.0, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<VocabularyItemRow spanish={self.spanish!r} interval={self.interval!r}>"
