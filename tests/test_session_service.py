import random

import pytest

from hablabot.schemas import SessionStartRequest
from hablabot.services.item_store import SESSIONS, InMemoryItemStore
from hablabot.services.session_service import ConversationSessionService
from hablabot.services.vocabulary import VocabularyService
from hablabot.utils.exceptions import (
    EmptyInputError,
    GenerationError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    SessionAlreadyEndedError,
    StorageError,
)


@pytest.fixture()
def words(vocabulary):
    return {
        spanish: vocabulary.add({"spanish": spanish, "english": english, "category": category})
        for spanish, english, category in (
            ("hola", "hello", "general"),
            ("la cuenta", "the bill", "food"),
            ("agua", "water", "food"),
        )
    }


def test_full_session_reviews_used_words(session_service, vocabulary, store, llm, words, clock):
    started = session_service.start({"scenario": "restaurant"})

    assert len(started.target_words) == 3
    assert started.opening_message
    assert llm.calls == []

    turn = session_service.send("Hola, quiero agua", 0.9)
    assert {word.spanish for word in turn.matched_words} == {"hola", "agua"}
    assert turn.stats.words_used == 2
    assert turn.should_continue is True
    assert "Eres María" in llm.calls[0][0]["content"]

    clock.advance(minutes=3)
    summary = session_service.end()

    reviewed = {entry.word_id: entry for entry in summary.reviewed}
    assert set(reviewed) == {words["hola"].id, words["agua"].id}
    # 0.9 * 3 + 2 * 0.5 + 0.5 for three words -> 4.2 -> 4
    assert reviewed[words["hola"].id].quality == 4
    assert vocabulary.get(words["agua"].id).repetitions == 1
    assert vocabulary.get(words["la cuenta"].id).repetitions == 0
    assert summary.skipped_word_ids == []

    (saved,) = store.get_all(SESSIONS)
    assert saved["id"] == started.session_id
    assert saved["message_count"] == 1
    assert [m["role"] for m in saved["conversation_history"]] == ["assistant", "user", "assistant"]

    (recent,) = session_service.recent_sessions()
    assert recent.id == started.session_id
    assert (recent.ended_at - recent.started_at).total_seconds() == 180


def test_topic_restricts_targets(session_service, words):
    started = session_service.start(SessionStartRequest(topic="food", max_words=5))

    assert {word.spanish for word in started.target_words} == {"la cuenta", "agua"}


def test_deleted_word_is_skipped_at_end(session_service, vocabulary, words):
    session_service.start()
    session_service.send("hola", 1.0)
    vocabulary.remove(words["hola"].id)

    summary = session_service.end()

    assert summary.skipped_word_ids == [words["hola"].id]
    assert summary.reviewed == []
    assert summary.record.target_words[0].spanish == "hola"


def test_generation_failure_leaves_stats_untouched(session_service, llm, words):
    session_service.start()
    llm.should_fail = True

    with pytest.raises(GenerationError):
        session_service.send("hola", 1.0)

    stats = session_service.status()
    assert stats.message_count == 0
    assert stats.words_used == 0

    llm.should_fail = False
    assert session_service.send("hola", 1.0).stats.message_count == 1


def test_state_errors(session_service, words):
    with pytest.raises(NoActiveSessionError):
        session_service.end()
    with pytest.raises(NoActiveSessionError):
        session_service.send("hola")

    session_service.start()
    with pytest.raises(SessionAlreadyActiveError):
        session_service.start()
    with pytest.raises(EmptyInputError):
        session_service.send("   ")

    assert session_service.pause().status == "paused"
    with pytest.raises(NoActiveSessionError):
        session_service.send("hola")
    assert session_service.resume().status == "active"

    session_service.end()
    with pytest.raises(SessionAlreadyEndedError):
        session_service.send("hola")
    with pytest.raises(SessionAlreadyEndedError):
        session_service.end()

    # A new session can begin once the previous one has ended.
    assert session_service.start().session_id


def test_tutor_nudges_unused_words(session_service, llm, words):
    llm.replies = ["Vale.", "Bien.", "Perfecto."]
    session_service.start()

    session_service.send("hola", 1.0)
    session_service.send("hola otra vez", 1.0)
    third = session_service.send("hola de nuevo", 1.0)

    assert third.reply.startswith("Perfecto.")
    assert '"la cuenta"' in third.reply or '"agua"' in third.reply


def test_empty_vocabulary_starts_without_targets(session_service):
    started = session_service.start({"scenario": "travel", "difficulty": "advanced"})

    assert started.target_words == []
    assert session_service.status().total_target_words == 0


class FlakySessionStore(InMemoryItemStore):
    """Fails the first ``failures`` writes of session records."""

    def __init__(self, failures: int = 1):
        super().__init__()
        self.failures = failures

    def put(self, kind, record):
        if kind == SESSIONS and self.failures:
            self.failures -= 1
            raise StorageError("disk full")
        super().put(kind, record)


@pytest.fixture()
def flaky_store() -> FlakySessionStore:
    return FlakySessionStore()


@pytest.fixture()
def flaky_service(flaky_store, llm, clock) -> ConversationSessionService:
    vocabulary = VocabularyService(flaky_store)
    for spanish, english in (("hola", "hello"), ("agua", "water")):
        vocabulary.add({"spanish": spanish, "english": english})
    return ConversationSessionService(
        vocabulary, flaky_store, llm, clock=clock, rng=random.Random(7)
    )


def test_end_resumes_after_session_record_write_fails(flaky_service, flaky_store):
    started = flaky_service.start()
    flaky_service.send("hola", 1.0)
    hola = next(word for word in started.target_words if word.spanish == "hola")

    with pytest.raises(StorageError):
        flaky_service.end()

    assert flaky_service.vocabulary.get(hola.id).repetitions == 1
    assert flaky_store.get_all(SESSIONS) == []

    summary = flaky_service.end()

    # The review applied before the failure is not repeated.
    assert flaky_service.vocabulary.get(hola.id).repetitions == 1
    assert [entry.word_id for entry in summary.reviewed] == [hola.id]
    (saved,) = flaky_store.get_all(SESSIONS)
    assert saved["id"] == started.session_id


def test_start_saves_session_left_by_failed_end(flaky_service, flaky_store):
    first = flaky_service.start()
    flaky_service.send("agua", 1.0)
    with pytest.raises(StorageError):
        flaky_service.end()

    second = flaky_service.start()

    assert [record["id"] for record in flaky_store.get_all(SESSIONS)] == [first.session_id]
    assert second.session_id != first.session_id
