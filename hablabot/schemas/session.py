"""Pydantic models for conversation sessions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from hablabot.schemas.vocabulary import VocabularyItem

SessionStatus = Literal["inactive", "active", "paused", "ended"]


class TargetWord(BaseModel):
    """Snapshot of a vocabulary item taken when a session starts."""

    id: str
    spanish: str
    english: str

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @classmethod
    def from_item(cls, item: VocabularyItem) -> "TargetWord":
        return cls(id=item.id, spanish=item.spanish, english=item.english)


class WordPerformance(BaseModel):
    """Per-word usage aggregate within one session."""

    attempts: int = 0
    successful_uses: int = 0
    average_confidence: float = 0.0


class SessionConfig(BaseModel):
    """Immutable configuration captured when a session starts."""

    id: str
    scenario: Optional[str] = None
    difficulty: str = "beginner"
    target_words: list[TargetWord] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)


class ConversationMessage(BaseModel):
    """Role-tagged message exchanged with the dialogue generator."""

    role: Literal["system", "user", "assistant"]
    content: str


class TurnRecord(BaseModel):
    """Changes produced by a single learner turn."""

    message_count: int
    matched_words: list[TargetWord] = Field(default_factory=list)
    words_used: dict[str, int] = Field(default_factory=dict)
    performance: dict[str, WordPerformance] = Field(default_factory=dict)


class SessionStats(BaseModel):
    """Live statistics for the running session."""

    session_id: str
    status: SessionStatus
    message_count: int
    total_target_words: int
    words_used: int
    words_used_percentage: int
    words_usage_details: dict[str, int]
    user_performance: dict[str, WordPerformance]
    duration_seconds: float


class SessionRecord(BaseModel):
    """Finalized, immutable record of a conversation session."""

    id: str
    scenario: Optional[str] = None
    difficulty: str
    target_words: list[TargetWord]
    started_at: datetime
    ended_at: datetime
    message_count: int
    words_used: dict[str, int]
    user_performance: dict[str, WordPerformance]
    conversation_history: list[ConversationMessage] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("started_at", "ended_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class SessionStartRequest(BaseModel):
    """Payload for starting a conversation session."""

    scenario: Optional[str] = Field(None, max_length=50)
    difficulty: Optional[str] = Field(None, description="Tutor difficulty and word tier")
    topic: Optional[str] = Field(None, description="Category or tag restricting target words")
    max_words: Optional[int] = Field(None, ge=1, le=50)
    prioritize_review: bool = True


class SessionTurnRequest(BaseModel):
    """Learner utterance, usually a speech transcript with its confidence."""

    content: str
    confidence: float = Field(1.0, description="Recognition confidence between 0 and 1")


class SessionStartResponse(BaseModel):
    session_id: str
    opening_message: str
    target_words: list[TargetWord]


class SessionTurnResponse(BaseModel):
    reply: str
    matched_words: list[TargetWord]
    stats: SessionStats
    should_continue: bool


class ReviewedWord(BaseModel):
    word_id: str
    quality: int
    mastery_level: float
    next_review_date: datetime


class SessionSummaryResponse(BaseModel):
    record: SessionRecord
    reviewed: list[ReviewedWord]
    skipped_word_ids: list[str] = Field(default_factory=list)
