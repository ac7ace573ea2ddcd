"""Spaced repetition scheduling and session word selection."""

from hablabot.core.srs.selection import (
    DIFFICULTY_TIERS,
    SelectionOptions,
    filter_candidates,
    select_session_words,
)
from hablabot.core.srs.sm2 import (
    QUALITY_THRESHOLD,
    convert_to_quality,
    days_overdue,
    derive_mastery,
    is_due,
    normalize_quality,
    review_forecast,
    review_statistics,
    schedule_review,
    update_easiness,
    words_for_review,
)

__all__ = [
    "DIFFICULTY_TIERS",
    "QUALITY_THRESHOLD",
    "SelectionOptions",
    "convert_to_quality",
    "days_overdue",
    "derive_mastery",
    "filter_candidates",
    "is_due",
    "normalize_quality",
    "review_forecast",
    "review_statistics",
    "schedule_review",
    "select_session_words",
    "update_easiness",
    "words_for_review",
]
