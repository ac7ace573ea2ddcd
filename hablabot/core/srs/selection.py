"""Target-word selection for conversation sessions.

Review-due, low-easiness words surface first, but at most 80% of a session
is review so that every session also carries weaker, not-yet-due words.
"""
from __future__ import annotations

import datetime as dt
import math
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, field_validator

from hablabot.core.srs.sm2 import days_overdue, is_due
from hablabot.schemas.vocabulary import DEFAULT_EASINESS, VocabularyItem

DifficultyTier = Literal["beginner", "intermediate", "advanced", "mixed"]

DIFFICULTY_TIERS: dict[str, frozenset[int]] = {
    "beginner": frozenset({1, 2}),
    "intermediate": frozenset({3, 4}),
    "advanced": frozenset({4, 5}),
    "mixed": frozenset({1, 2, 3, 4, 5}),
}

REVIEW_SHARE = 0.8


class SelectionOptions(BaseModel):
    """Caller-supplied session selection options.

    Invalid values fall back to the defaults rather than raising, so that a
    stale settings form cannot prevent a session from starting.
    """

    max_words: int = 5
    difficulty_tier: DifficultyTier = "mixed"
    topic: str | None = None
    prioritize_review: bool = True

    model_config = ConfigDict(extra="ignore")

    @field_validator("max_words", mode="before")
    @classmethod
    def _coerce_max_words(cls, value: Any) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            return 5
        return number if number >= 1 else 5

    @field_validator("difficulty_tier", mode="before")
    @classmethod
    def _coerce_tier(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in DIFFICULTY_TIERS:
            return value.strip().lower()
        return "mixed"

    @field_validator("topic", mode="before")
    @classmethod
    def _coerce_topic(cls, value: Any) -> str | None:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return None

    @field_validator("prioritize_review", mode="before")
    @classmethod
    def _coerce_prioritize(cls, value: Any) -> bool:
        return value if isinstance(value, bool) else True

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any] | None) -> "SelectionOptions":
        return cls.model_validate(dict(options or {}))


def _matches_topic(item: VocabularyItem, topic: str) -> bool:
    return item.category == topic or topic in (item.tags or [])


def filter_candidates(
    items: Iterable[VocabularyItem], options: SelectionOptions
) -> list[VocabularyItem]:
    """Restrict items to the requested difficulty tier and topic."""

    allowed = DIFFICULTY_TIERS[options.difficulty_tier]
    candidates = [item for item in items if (item.difficulty or 1) in allowed]
    if options.topic:
        candidates = [item for item in candidates if _matches_topic(item, options.topic)]
    return candidates


def select_session_words(
    items: Iterable[VocabularyItem],
    options: SelectionOptions | Mapping[str, Any] | None = None,
    *,
    now: dt.datetime | None = None,
) -> list[VocabularyItem]:
    """Return at most ``max_words`` items ordered by practice priority."""

    if not isinstance(options, SelectionOptions):
        options = SelectionOptions.from_mapping(options)
    now = now or dt.datetime.now(dt.timezone.utc)

    candidates = filter_candidates(items, options)
    due = [item for item in candidates if is_due(item, now)]
    not_due = [item for item in candidates if not is_due(item, now)]

    due.sort(
        key=lambda item: (-days_overdue(item, now), item.easiness_factor or DEFAULT_EASINESS)
    )

    if options.prioritize_review and due:
        review_count = min(math.ceil(options.max_words * REVIEW_SHARE), len(due))
        selected = due[:review_count]
        remaining = options.max_words - len(selected)
        if remaining > 0:
            not_due.sort(key=lambda item: item.mastery_level or 0.0)
            selected.extend(not_due[:remaining])
        return selected

    merged = sorted(
        [*due, *not_due],
        key=lambda item: (
            0 if days_overdue(item, now) > 0 else 1,
            item.mastery_level or 0.0,
        ),
    )
    return merged[: options.max_words]
