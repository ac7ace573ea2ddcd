"""Pydantic schemas for vocabulary items and their endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_EASINESS = 2.5
MIN_EASINESS = 1.3

# Fields written only by the scheduler; edits through the facade never touch them.
SCHEDULING_FIELDS = frozenset(
    {
        "repetitions",
        "easiness_factor",
        "interval",
        "next_review_date",
        "last_reviewed",
        "last_quality",
        "times_correct",
        "times_incorrect",
        "mastery_level",
    }
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dedupe(values: List[str]) -> List[str]:
    seen: set[str] = set()
    result: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


class VocabularyItem(BaseModel):
    """A Spanish word or phrase together with its review schedule."""

    id: str
    spanish: str
    english: str
    phonetic: str = ""
    difficulty: int = Field(1, ge=1, le=5)
    category: str = "general"
    examples: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    repetitions: int = Field(0, ge=0)
    easiness_factor: float = Field(DEFAULT_EASINESS, ge=MIN_EASINESS)
    interval: int = Field(0, ge=0)
    next_review_date: Optional[datetime] = Field(default_factory=_utc_now)
    last_reviewed: Optional[datetime] = None
    last_quality: Optional[int] = Field(None, ge=0, le=5)

    times_correct: int = Field(0, ge=0)
    times_incorrect: int = Field(0, ge=0)
    mastery_level: float = Field(0.0, ge=0.0, le=10.0)

    created_at: datetime = Field(default_factory=_utc_now)

    model_config = ConfigDict(from_attributes=True)

    @field_validator("next_review_date", "last_reviewed", "created_at")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # SQLite hands back naive datetimes.
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: List[str]) -> List[str]:
        return _dedupe(value)


class VocabularyItemCreate(BaseModel):
    """Payload for adding a vocabulary item."""

    spanish: str = ""
    english: str = ""
    phonetic: str = ""
    difficulty: int | str | None = 1
    category: Optional[str] = None
    examples: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")


class VocabularyItemUpdate(BaseModel):
    """Partial update of the descriptive fields of a vocabulary item."""

    spanish: Optional[str] = None
    english: Optional[str] = None
    phonetic: Optional[str] = None
    difficulty: int | str | None = None
    category: Optional[str] = None
    # Lists or separator-joined strings, split by the service
    examples: List[str] | str | None = None
    tags: List[str] | str | None = None

    model_config = ConfigDict(extra="ignore")


class VocabularyFilter(BaseModel):
    """Filters applied to the vocabulary list; all present filters are ANDed."""

    search: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[int] = None
    mastery_level: Optional[int] = None


class ImportRowError(BaseModel):
    """A rejected row of a batch import."""

    row: int
    reason: str


class ImportReport(BaseModel):
    """Outcome of a batch import; partial success is expected."""

    imported: int = 0
    items: List[VocabularyItem] = Field(default_factory=list)
    errors: List[ImportRowError] = Field(default_factory=list)


class ReviewRequest(BaseModel):
    """Response quality reported for a single review."""

    quality: float


class VocabularyListResponse(BaseModel):
    """Filtered vocabulary response payload."""

    total: int
    items: list[VocabularyItem]


class VocabularyStatistics(BaseModel):
    """Aggregate counts over the learner's vocabulary."""

    total: int
    by_category: dict[str, int]
    by_difficulty: dict[int, int]
    by_mastery_level: dict[int, int]
    average_mastery: float
    words_for_review: int


class ReviewStatistics(BaseModel):
    """Review workload summary."""

    total: int
    due_today: int
    due_tomorrow: int
    due_this_week: int
    mastered: int
    learning: int
    new: int
    average_mastery: float


class ForecastDay(BaseModel):
    """Number of words due on a given day."""

    date: datetime
    due_count: int
    day_name: str
