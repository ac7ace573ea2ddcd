"""SM-2 spaced repetition scheduler for vocabulary items."""
from __future__ import annotations

import datetime as dt
import math
from typing import Iterable, Sequence

from hablabot.schemas.vocabulary import (
    DEFAULT_EASINESS,
    MIN_EASINESS,
    ForecastDay,
    ReviewStatistics,
    VocabularyItem,
)

EASINESS_PENALTY = 0.8
QUALITY_THRESHOLD = 3  # Below this, the review counts as failed
MAX_QUALITY = 5

# Intervals for the first and second consecutive success, in days
INITIAL_INTERVALS = (1, 6)

MASTERY_REPETITION_WEIGHT = 1.5
MASTERY_REPETITION_CAP = 8.0
MASTERY_EASINESS_CEILING = 3.0
MASTERY_EASINESS_WEIGHT = 2.0
MAX_MASTERY = 10.0
MASTERED_THRESHOLD = 8.0

TZ = dt.timezone.utc


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _ensure_timezone(value: dt.datetime | None) -> dt.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=TZ)
    return value


def _now(now: dt.datetime | None) -> dt.datetime:
    return _ensure_timezone(now) if now is not None else dt.datetime.now(TZ)


def normalize_quality(quality: float) -> int:
    """Round a response quality half-up and clamp it into 0-5."""

    if quality is None or math.isnan(quality):
        return 0
    if math.isinf(quality):
        return MAX_QUALITY if quality > 0 else 0
    return max(0, min(MAX_QUALITY, _round_half_up(quality)))


def update_easiness(easiness_factor: float, quality: int) -> float:
    """Apply the SM-2 easiness formula.

    EF' = EF + (0.1 - (5 - q) * (0.08 + (5 - q) * 0.02)), floored at 1.3.
    """

    delta = 0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02)
    return max(MIN_EASINESS, easiness_factor + delta)


def derive_mastery(
    repetitions: int,
    easiness_factor: float,
    times_correct: int,
    times_incorrect: int,
) -> float:
    """Return the 0-10 mastery estimate for the given review history."""

    total_attempts = times_correct + times_incorrect
    if total_attempts <= 0:
        return 0.0

    mastery = min(repetitions * MASTERY_REPETITION_WEIGHT, MASTERY_REPETITION_CAP)
    mastery *= times_correct / total_attempts

    easiness_bonus = (easiness_factor - MIN_EASINESS) / (MASTERY_EASINESS_CEILING - MIN_EASINESS)
    mastery += easiness_bonus * MASTERY_EASINESS_WEIGHT

    mastery = max(0.0, min(MAX_MASTERY, mastery))
    return math.floor(mastery * 10 + 0.5) / 10


def schedule_review(
    item: VocabularyItem, quality: float, *, now: dt.datetime | None = None
) -> VocabularyItem:
    """Return a copy of ``item`` rescheduled after a review of the given quality."""

    now = _now(now)
    quality = normalize_quality(quality)

    repetitions = item.repetitions or 0
    easiness_factor = item.easiness_factor or DEFAULT_EASINESS
    interval = item.interval or 0

    new_easiness = update_easiness(easiness_factor, quality)
    passed = quality >= QUALITY_THRESHOLD

    if passed:
        repetitions += 1
        if repetitions == 1:
            interval = INITIAL_INTERVALS[0]
        elif repetitions == 2:
            interval = INITIAL_INTERVALS[1]
        else:
            interval = _round_half_up(interval * new_easiness)
        easiness_factor = new_easiness
    else:
        # Failing is penalised harder than the formula alone.
        repetitions = 0
        interval = 1
        easiness_factor = max(MIN_EASINESS, easiness_factor - EASINESS_PENALTY)

    times_correct = item.times_correct + (1 if passed else 0)
    times_incorrect = item.times_incorrect + (0 if passed else 1)

    return item.model_copy(
        update={
            "repetitions": repetitions,
            "easiness_factor": easiness_factor,
            "interval": interval,
            "next_review_date": now + dt.timedelta(days=interval),
            "last_reviewed": now,
            "last_quality": quality,
            "times_correct": times_correct,
            "times_incorrect": times_incorrect,
            "mastery_level": derive_mastery(
                repetitions, easiness_factor, times_correct, times_incorrect
            ),
        }
    )


def is_due(item: VocabularyItem, as_of: dt.datetime | None = None) -> bool:
    """Return ``True`` when the item's review date has been reached."""

    next_review = _ensure_timezone(item.next_review_date)
    if next_review is None:
        return True
    return next_review <= _now(as_of)


def days_overdue(item: VocabularyItem, as_of: dt.datetime | None = None) -> int:
    """Return whole days (rounded up) past the review date, never negative."""

    next_review = _ensure_timezone(item.next_review_date)
    if next_review is None:
        next_review = dt.datetime.fromtimestamp(0, TZ)
    elapsed = (_now(as_of) - next_review) / dt.timedelta(days=1)
    return max(0, math.ceil(elapsed))


def words_for_review(
    items: Iterable[VocabularyItem], as_of: dt.datetime | None = None
) -> list[VocabularyItem]:
    """Return due items, most overdue first and harder words before easier ones."""

    as_of = _now(as_of)
    due = [item for item in items if is_due(item, as_of)]
    return sorted(
        due,
        key=lambda item: (
            -days_overdue(item, as_of),
            item.easiness_factor or DEFAULT_EASINESS,
        ),
    )


def convert_to_quality(score: float, scale: str = "sm2") -> int:
    """Convert scores from other rating scales into SM-2 quality."""

    if scale == "binary":
        return 4 if score else 1
    if scale == "percentage":
        for threshold, quality in ((90, 5), (80, 4), (60, 3), (40, 2), (20, 1)):
            if score >= threshold:
                return quality
        return 0
    if scale == "confidence":
        return normalize_quality(score * MAX_QUALITY)
    return normalize_quality(score)


def review_statistics(
    items: Sequence[VocabularyItem], now: dt.datetime | None = None
) -> ReviewStatistics:
    """Summarise the review workload for the given items."""

    now = _now(now)
    tomorrow = now + dt.timedelta(days=1)
    next_week = now + dt.timedelta(days=7)

    mastered = learning = new = 0
    due_this_week = 0
    total_mastery = 0.0
    for item in items:
        mastery = item.mastery_level or 0.0
        total_mastery += mastery
        if mastery >= MASTERED_THRESHOLD:
            mastered += 1
        elif mastery > 0:
            learning += 1
        else:
            new += 1
        if is_due(item, next_week):
            due_this_week += 1

    average = math.floor(total_mastery / len(items) * 10 + 0.5) / 10 if items else 0.0
    return ReviewStatistics(
        total=len(items),
        due_today=sum(1 for item in items if is_due(item, now)),
        due_tomorrow=sum(1 for item in items if is_due(item, tomorrow)),
        due_this_week=due_this_week,
        mastered=mastered,
        learning=learning,
        new=new,
        average_mastery=average,
    )


def review_forecast(
    items: Sequence[VocabularyItem], days: int = 7, now: dt.datetime | None = None
) -> list[ForecastDay]:
    """Return how many words will be due on each of the next ``days`` days."""

    now = _now(now)
    forecast: list[ForecastDay] = []
    for offset in range(max(0, days)):
        check_date = now + dt.timedelta(days=offset)
        forecast.append(
            ForecastDay(
                date=check_date,
                due_count=sum(1 for item in items if is_due(item, check_date)),
                day_name=check_date.strftime("%a"),
            )
        )
    return forecast
