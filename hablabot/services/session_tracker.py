"""Transient usage tracking for a single conversation session.

A tracker lives for exactly one session:
``inactive -> active -> (paused <-> active) -> ended``. Calls must be
serialized by the caller because the running confidence mean depends on the
order in which turns are applied.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable, Iterable

from loguru import logger

from hablabot.core.conversation.quality import clamp_confidence
from hablabot.schemas.session import (
    SessionConfig,
    SessionRecord,
    SessionStats,
    TargetWord,
    TurnRecord,
    WordPerformance,
)
from hablabot.schemas.vocabulary import VocabularyItem
from hablabot.utils.exceptions import (
    EmptyInputError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    SessionAlreadyEndedError,
)

SUCCESS_CONFIDENCE = 0.7
DEFAULT_SESSION_MINUTES = 15


class TrackerState(str, Enum):
    INACTIVE = "inactive"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_text(text: str) -> str:
    return " ".join(text.split())


def snapshot_targets(words: Iterable[TargetWord | VocabularyItem]) -> list[TargetWord]:
    """Copy the display and matching fields of the selected words."""

    snapshots: list[TargetWord] = []
    for word in words:
        if isinstance(word, TargetWord):
            snapshots.append(word)
        else:
            snapshots.append(TargetWord.from_item(word))
    return snapshots


class SessionTracker:
    """Count target-word usage and confidence for one conversation."""

    def __init__(
        self,
        *,
        session_length_minutes: int = DEFAULT_SESSION_MINUTES,
        success_confidence: float = SUCCESS_CONFIDENCE,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.session_length = timedelta(minutes=session_length_minutes)
        self.success_confidence = success_confidence
        self._clock = clock or _utc_now
        self.state = TrackerState.INACTIVE
        self.config: SessionConfig | None = None
        self.started_at: datetime | None = None
        self.ended_at: datetime | None = None
        self.message_count = 0
        self.words_used: dict[str, int] = {}
        self.user_performance: dict[str, WordPerformance] = {}
        self._record: SessionRecord | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self, config: SessionConfig) -> SessionConfig:
        """Begin tracking with a frozen copy of the session's target words."""

        if self.state is TrackerState.ENDED:
            raise SessionAlreadyEndedError("Session has ended; start a new tracker")
        if self.state is not TrackerState.INACTIVE:
            raise SessionAlreadyActiveError("Session already started", {"session_id": config.id})

        self.config = config.model_copy(update={"target_words": snapshot_targets(config.target_words)})
        self.started_at = self._clock()
        self.message_count = 0
        self.words_used = {}
        self.user_performance = {}
        self.state = TrackerState.ACTIVE
        logger.info(
            "Session started",
            session_id=config.id,
            scenario=config.scenario,
            target_words=len(self.config.target_words),
        )
        return self.config

    def pause(self) -> None:
        if self.state is TrackerState.ENDED:
            raise SessionAlreadyEndedError("Session has already ended")
        if self.state is not TrackerState.ACTIVE:
            raise NoActiveSessionError("No active conversation session")
        self.state = TrackerState.PAUSED

    def resume(self) -> None:
        if self.state is TrackerState.ENDED:
            raise SessionAlreadyEndedError("Session has already ended")
        if self.state is not TrackerState.PAUSED:
            raise NoActiveSessionError("No paused conversation session")
        self.state = TrackerState.ACTIVE

    def end(self) -> SessionRecord:
        """Finalize the session and return its immutable record."""

        if self.state is TrackerState.ENDED:
            raise SessionAlreadyEndedError("Session has already ended")
        if self.state is TrackerState.INACTIVE or self.config is None:
            raise NoActiveSessionError("No active conversation session")

        self.ended_at = self._clock()
        self.state = TrackerState.ENDED
        self._record = SessionRecord(
            id=self.config.id,
            scenario=self.config.scenario,
            difficulty=self.config.difficulty,
            target_words=list(self.config.target_words),
            started_at=self.started_at,
            ended_at=self.ended_at,
            message_count=self.message_count,
            words_used=dict(self.words_used),
            user_performance={
                word_id: performance.model_copy()
                for word_id, performance in self.user_performance.items()
            },
        )
        logger.info(
            "Session ended",
            session_id=self.config.id,
            messages=self.message_count,
            words_used=len(self.words_used),
        )
        return self._record

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------
    @property
    def target_words(self) -> list[TargetWord]:
        return list(self.config.target_words) if self.config else []

    def words_used_in(self, text: str) -> list[TargetWord]:
        """Return target words whose Spanish text occurs in ``text``."""

        haystack = _normalize_text(text).lower()
        return [word for word in self.target_words if word.spanish.lower() in haystack]

    def unused_target_words(self) -> list[TargetWord]:
        return [word for word in self.target_words if word.id not in self.words_used]

    def record_turn(self, user_text: str, confidence: float = 1.0) -> TurnRecord:
        """Apply one learner utterance to the usage aggregates."""

        if self.state is not TrackerState.ACTIVE:
            raise NoActiveSessionError("No active conversation session")
        if not user_text or not user_text.strip():
            raise EmptyInputError("No user input provided")

        confidence = clamp_confidence(confidence)
        matched = self.words_used_in(user_text)

        for word in matched:
            self.words_used[word.id] = self.words_used.get(word.id, 0) + 1
            performance = self.user_performance.setdefault(word.id, WordPerformance())
            performance.attempts += 1
            if confidence >= self.success_confidence:
                performance.successful_uses += 1
            performance.average_confidence = (
                performance.average_confidence * (performance.attempts - 1) + confidence
            ) / performance.attempts

        self.message_count += 1
        if matched:
            logger.debug(
                "Target words used",
                session_id=self.config.id,
                words=[word.spanish for word in matched],
                confidence=confidence,
            )

        return TurnRecord(
            message_count=self.message_count,
            matched_words=matched,
            words_used={word.id: self.words_used[word.id] for word in matched},
            performance={
                word.id: self.user_performance[word.id].model_copy() for word in matched
            },
        )

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------
    def elapsed(self) -> timedelta:
        if self.started_at is None:
            return timedelta(0)
        end = self.ended_at or self._clock()
        return end - self.started_at

    def should_continue(self) -> bool:
        """Advisory: under the time limit and the learner has spoken at least once."""

        if self.state in (TrackerState.INACTIVE, TrackerState.ENDED):
            return False
        return self.elapsed() < self.session_length and self.message_count > 0

    def stats(self) -> SessionStats:
        if self.config is None:
            raise NoActiveSessionError("No active conversation session")
        total = len(self.config.target_words)
        used = len(self.words_used)
        percentage = (used / total) * 100 if total else 0.0
        return SessionStats(
            session_id=self.config.id,
            status=self.state.value,
            message_count=self.message_count,
            total_target_words=total,
            words_used=used,
            words_used_percentage=int(percentage + 0.5),
            words_usage_details=dict(self.words_used),
            user_performance={
                word_id: performance.model_copy()
                for word_id, performance in self.user_performance.items()
            },
            duration_seconds=self.elapsed().total_seconds(),
        )


__all__ = ["SessionTracker", "TrackerState", "snapshot_targets"]
