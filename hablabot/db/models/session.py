"""Conversation session database models."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import JSON

from hablabot.db.base import Base


class ConversationSessionRow(Base):
    """Finalized conversation session with its usage aggregates."""

    __tablename__ = "conversation_sessions"

    id = Column(String(64), primary_key=True)
    scenario = Column(String(50), index=True)
    difficulty = Column(String(20))

    started_at = Column(DateTime(timezone=True), nullable=False, index=True)
    ended_at = Column(DateTime(timezone=True), index=True)
    message_count = Column(Integer, default=0, nullable=False)

    target_words = Column(JSONB().with_variant(JSON(), "sqlite"), default=list)
    words_used = Column(JSONB().with_variant(JSON(), "sqlite"), default=dict)
    user_performance = Column(JSONB().with_variant(JSON(), "sqlite"), default=dict)
    conversation_history = Column(JSONB().with_variant(JSON(), "sqlite"), default=list)
