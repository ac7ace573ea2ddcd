import pytest

from hablabot.schemas import SessionConfig, TargetWord
from hablabot.services.session_tracker import SessionTracker, TrackerState
from hablabot.utils.exceptions import (
    EmptyInputError,
    NoActiveSessionError,
    SessionAlreadyActiveError,
    SessionAlreadyEndedError,
)


@pytest.fixture()
def config() -> SessionConfig:
    return SessionConfig(
        id="s1",
        scenario="restaurant",
        target_words=[
            TargetWord(id="w1", spanish="hola", english="hello"),
            TargetWord(id="w2", spanish="la cuenta", english="the bill"),
        ],
    )


@pytest.fixture()
def tracker(clock) -> SessionTracker:
    return SessionTracker(session_length_minutes=15, clock=clock)


def test_turn_aggregation(tracker, config):
    tracker.start(config)

    tracker.record_turn("Hola, ¿qué tal?", 0.9)
    assert tracker.words_used == {"w1": 1}
    first = tracker.user_performance["w1"]
    assert (first.attempts, first.successful_uses) == (1, 1)
    assert first.average_confidence == pytest.approx(0.9)

    turn = tracker.record_turn("hola otra vez", 0.5)
    assert tracker.words_used == {"w1": 2}
    second = tracker.user_performance["w1"]
    assert (second.attempts, second.successful_uses) == (2, 1)
    assert second.average_confidence == pytest.approx(0.7)
    assert turn.message_count == 2
    assert [word.id for word in turn.matched_words] == ["w1"]


def test_multi_word_phrases_match_case_insensitively(tracker, config):
    tracker.start(config)

    turn = tracker.record_turn("Hola,   LA   CUENTA por favor", 1.0)

    assert {word.id for word in turn.matched_words} == {"w1", "w2"}
    assert tracker.unused_target_words() == []


def test_turn_without_targets_counts_message_only(tracker, config):
    tracker.start(config)

    turn = tracker.record_turn("Quiero agua", 0.8)

    assert turn.matched_words == []
    assert tracker.message_count == 1
    assert tracker.words_used == {}


def test_confidence_is_clamped(tracker, config):
    tracker.start(config)

    tracker.record_turn("hola", 1.7)
    tracker.record_turn("hola", -2)

    performance = tracker.user_performance["w1"]
    assert performance.average_confidence == pytest.approx(0.5)
    assert performance.successful_uses == 1


def test_nan_confidence_counts_as_unsuccessful(tracker, config):
    tracker.start(config)

    turn = tracker.record_turn("hola", float("nan"))

    performance = tracker.user_performance["w1"]
    assert turn.performance["w1"].average_confidence == 0.0
    assert performance.average_confidence == 0.0
    assert performance.successful_uses == 0


def test_state_machine_rejects_invalid_transitions(tracker, config):
    with pytest.raises(NoActiveSessionError):
        tracker.record_turn("hola")
    with pytest.raises(NoActiveSessionError):
        tracker.pause()
    with pytest.raises(NoActiveSessionError):
        tracker.end()

    tracker.start(config)
    with pytest.raises(SessionAlreadyActiveError):
        tracker.start(config)
    with pytest.raises(EmptyInputError):
        tracker.record_turn("   ")

    tracker.pause()
    assert tracker.state is TrackerState.PAUSED
    with pytest.raises(NoActiveSessionError):
        tracker.record_turn("hola")
    with pytest.raises(NoActiveSessionError):
        tracker.pause()
    tracker.resume()
    with pytest.raises(NoActiveSessionError):
        tracker.resume()

    tracker.end()
    for call in (tracker.end, tracker.pause, tracker.resume, lambda: tracker.start(config)):
        with pytest.raises(SessionAlreadyEndedError):
            call()


def test_end_from_paused_returns_snapshot(tracker, config, clock):
    tracker.start(config)
    tracker.record_turn("hola", 0.9)
    tracker.pause()
    clock.advance(minutes=4)

    record = tracker.end()

    assert record.id == "s1"
    assert record.message_count == 1
    assert record.words_used == {"w1": 1}
    assert (record.ended_at - record.started_at).total_seconds() == 240
    assert [word.spanish for word in record.target_words] == ["hola", "la cuenta"]

    # The record is a snapshot; later mutation of the tracker does not leak into it.
    tracker.user_performance["w1"].attempts = 99
    assert record.user_performance["w1"].attempts == 1


def test_should_continue_and_stats(tracker, config, clock):
    assert tracker.should_continue() is False

    tracker.start(config)
    assert tracker.should_continue() is False

    tracker.record_turn("hola", 0.9)
    assert tracker.should_continue() is True

    stats = tracker.stats()
    assert stats.status == "active"
    assert stats.total_target_words == 2
    assert stats.words_used == 1
    assert stats.words_used_percentage == 50

    clock.advance(minutes=15)
    assert tracker.should_continue() is False

    tracker.end()
    assert tracker.should_continue() is False
    assert tracker.stats().status == "ended"
