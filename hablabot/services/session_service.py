"""Conversation session orchestration.

Selects target words, drives the tutor dialogue, tracks word usage and turns
the finished session into SM-2 reviews plus a persisted session record.
"""
from __future__ import annotations

import random
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional
from uuid import uuid4

from loguru import logger

from hablabot.config import settings
from hablabot.core.conversation.generator import DialogueGenerator
from hablabot.core.conversation.prompts import (
    build_system_prompt,
    conversation_starter,
    vocabulary_nudge,
)
from hablabot.core.conversation.quality import (
    QualityStrategy,
    aggregate_word_quality,
    utterance_quality,
)
from hablabot.core.srs.selection import SelectionOptions
from hablabot.schemas.session import (
    ReviewedWord,
    SessionConfig,
    SessionRecord,
    SessionStartRequest,
    SessionStartResponse,
    SessionStats,
    SessionSummaryResponse,
    SessionTurnResponse,
)
from hablabot.services.item_store import SESSIONS, ItemStore
from hablabot.services.session_tracker import SessionTracker, TrackerState, snapshot_targets
from hablabot.services.vocabulary import VocabularyService
from hablabot.utils.exceptions import (
    EmptyInputError,
    NoActiveSessionError,
    NotFoundError,
    SessionAlreadyActiveError,
    SessionAlreadyEndedError,
)

# Every Nth learner turn the tutor nudges towards an unused target word.
NUDGE_EVERY = 3


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class _ClosingSession:
    """Ended session whose reviews or record have not all been saved yet."""

    record: SessionRecord
    reviewed: list[ReviewedWord] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def done(self) -> set[str]:
        return {entry.word_id for entry in self.reviewed} | set(self.skipped)


class ConversationSessionService:
    """Run one conversation session at a time for a single learner."""

    def __init__(
        self,
        vocabulary: VocabularyService,
        store: ItemStore,
        llm_service: Any,
        *,
        quality_strategy: QualityStrategy = utterance_quality,
        session_length_minutes: Optional[int] = None,
        success_confidence: Optional[float] = None,
        words_per_session: Optional[int] = None,
        default_difficulty: Optional[str] = None,
        max_history_messages: Optional[int] = None,
        clock: Optional[Callable[[], datetime]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.vocabulary = vocabulary
        self.store = store
        self.llm_service = llm_service
        self.quality_strategy = quality_strategy
        self.session_length_minutes = session_length_minutes or settings.SESSION_LENGTH_MINUTES
        self.success_confidence = (
            settings.SUCCESS_CONFIDENCE if success_confidence is None else success_confidence
        )
        self.words_per_session = words_per_session or settings.WORDS_PER_SESSION
        self.default_difficulty = default_difficulty or settings.DEFAULT_DIFFICULTY
        self.max_history_messages = max_history_messages or settings.MAX_HISTORY_MESSAGES
        self._clock = clock or _utc_now
        self._rng = rng or random.Random()
        self._lock = threading.RLock()
        self._tracker: SessionTracker | None = None
        self._generator: DialogueGenerator | None = None
        self._scores: dict[str, list[float]] = defaultdict(list)
        self._closing: _ClosingSession | None = None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_tracker(self) -> SessionTracker:
        if self._tracker is None:
            raise NoActiveSessionError("No active conversation session")
        return self._tracker

    def _selection_options(self, request: SessionStartRequest) -> SelectionOptions:
        return SelectionOptions.from_mapping(
            {
                "max_words": request.max_words or self.words_per_session,
                "difficulty_tier": request.difficulty or "mixed",
                "topic": request.topic,
                "prioritize_review": request.prioritize_review,
            }
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(
        self, request: SessionStartRequest | Mapping[str, Any] | None = None
    ) -> SessionStartResponse:
        """Pick target words and open a new tutor dialogue."""

        if not isinstance(request, SessionStartRequest):
            request = SessionStartRequest.model_validate(dict(request or {}))

        with self._lock:
            if self._closing is not None:
                self._finish(self._closing)
            if self._tracker is not None and self._tracker.state in (
                TrackerState.ACTIVE,
                TrackerState.PAUSED,
            ):
                raise SessionAlreadyActiveError(
                    "A conversation session is already running",
                    {"session_id": self._tracker.config.id},
                )

            now = self._clock()
            difficulty = request.difficulty or self.default_difficulty
            words = self.vocabulary.select_session_words(self._selection_options(request), now=now)
            config = SessionConfig(
                id=uuid4().hex,
                scenario=request.scenario,
                difficulty=difficulty,
                target_words=snapshot_targets(words),
            )

            tracker = SessionTracker(
                session_length_minutes=self.session_length_minutes,
                success_confidence=self.success_confidence,
                clock=self._clock,
            )
            config = tracker.start(config)

            generator = DialogueGenerator(
                self.llm_service,
                max_history_messages=self.max_history_messages,
                temperature=settings.LLM_TEMPERATURE,
                max_tokens=settings.LLM_MAX_TOKENS,
            )
            opening = generator.open(
                build_system_prompt(config.scenario, difficulty, config.target_words),
                conversation_starter(config.scenario, difficulty, self._rng),
            )

            self._tracker = tracker
            self._generator = generator
            self._scores = defaultdict(list)

        return SessionStartResponse(
            session_id=config.id,
            opening_message=opening,
            target_words=list(config.target_words),
        )

    def send(self, user_text: str, confidence: float = 1.0) -> SessionTurnResponse:
        """Handle one learner utterance and return the tutor's answer.

        The reply is generated before usage is recorded, so a failed
        generation leaves the session statistics untouched.
        """

        with self._lock:
            tracker = self._require_tracker()
            if tracker.state is TrackerState.ENDED:
                raise SessionAlreadyEndedError("Session has already ended")
            if tracker.state is not TrackerState.ACTIVE:
                raise NoActiveSessionError("Conversation session is paused")
            if not user_text or not user_text.strip():
                raise EmptyInputError("No user input provided")

            reply = self._generator.reply(user_text)
            turn = tracker.record_turn(user_text, confidence)

            if turn.matched_words:
                score = self.quality_strategy(user_text, confidence, len(turn.matched_words))
                for word in turn.matched_words:
                    self._scores[word.id].append(score)

            text = reply.text
            unused = tracker.unused_target_words()
            if unused and turn.message_count % NUDGE_EVERY == 0:
                text = self._generator.extend_last_reply(vocabulary_nudge(unused[0], self._rng))

            return SessionTurnResponse(
                reply=text,
                matched_words=turn.matched_words,
                stats=tracker.stats(),
                should_continue=tracker.should_continue(),
            )

    def pause(self) -> SessionStats:
        with self._lock:
            tracker = self._require_tracker()
            tracker.pause()
            return tracker.stats()

    def resume(self) -> SessionStats:
        with self._lock:
            tracker = self._require_tracker()
            tracker.resume()
            return tracker.stats()

    def status(self) -> SessionStats:
        with self._lock:
            return self._require_tracker().stats()

    def _finish(self, closing: _ClosingSession) -> SessionSummaryResponse:
        record = closing.record
        for word in record.target_words:
            if word.id not in record.words_used or word.id in closing.done:
                continue
            quality = aggregate_word_quality(self._scores.get(word.id, []))
            try:
                item = self.vocabulary.record_review(word.id, quality, now=record.ended_at)
            except NotFoundError:
                logger.warning(
                    "Skipping review for deleted word", session_id=record.id, word_id=word.id
                )
                closing.skipped.append(word.id)
                continue
            closing.reviewed.append(
                ReviewedWord(
                    word_id=item.id,
                    quality=item.last_quality,
                    mastery_level=item.mastery_level,
                    next_review_date=item.next_review_date,
                )
            )

        self.store.put(SESSIONS, record.model_dump())
        self._closing = None
        logger.info(
            "Session saved",
            session_id=record.id,
            reviewed=len(closing.reviewed),
            skipped=len(closing.skipped),
        )
        return SessionSummaryResponse(
            record=record, reviewed=list(closing.reviewed), skipped_word_ids=list(closing.skipped)
        )

    def end(self) -> SessionSummaryResponse:
        """Finish the session, review every used word and persist the record.

        If a storage failure interrupts this, the ended session is kept and the
        next call resumes with the words not reviewed yet.
        """

        with self._lock:
            if self._closing is None:
                tracker = self._require_tracker()
                record = tracker.end()
                record = record.model_copy(
                    update={"conversation_history": self._generator.history()}
                )
                self._closing = _ClosingSession(record=record)
            else:
                logger.info("Resuming interrupted session end", session_id=self._closing.record.id)
            return self._finish(self._closing)

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def recent_sessions(self, limit: int = 10) -> list[SessionRecord]:
        """Return persisted sessions, newest first."""

        records = [SessionRecord.model_validate(raw) for raw in self.store.get_all(SESSIONS)]
        records.sort(key=lambda record: record.started_at, reverse=True)
        return records[: max(0, limit)]


__all__ = ["ConversationSessionService", "NUDGE_EVERY"]
