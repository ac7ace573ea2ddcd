from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from hablabot.services.item_store import SESSIONS, VOCABULARY, InMemoryItemStore, SQLItemStore
from hablabot.services.vocabulary import VocabularyService
from hablabot.utils.exceptions import StorageError


def test_in_memory_store_copies_records():
    store = InMemoryItemStore()
    record = {"id": "a", "tags": ["x"]}

    store.put(VOCABULARY, record)
    record["tags"].append("y")
    loaded = store.get_all(VOCABULARY)
    loaded[0]["tags"].append("z")

    assert store.get_all(VOCABULARY) == [{"id": "a", "tags": ["x"]}]
    store.delete(VOCABULARY, "a")
    store.delete(VOCABULARY, "a")
    assert store.get_all(VOCABULARY) == []


def test_in_memory_store_rejects_unknown_kind_and_missing_id():
    store = InMemoryItemStore()

    with pytest.raises(StorageError):
        store.get_all("grammar")
    with pytest.raises(StorageError):
        store.put(VOCABULARY, {"spanish": "hola"})


def test_sql_store_round_trips_vocabulary(sql_store, make_item, now):
    item = make_item(id="w1", spanish="hola", examples=["¡Hola!"], tags=["greeting"])

    sql_store.put(VOCABULARY, item.model_dump())
    updated = item.model_copy(update={"repetitions": 2, "next_review_date": now + timedelta(days=6)})
    sql_store.put(VOCABULARY, updated.model_dump())

    service = VocabularyService(sql_store)
    (loaded,) = service.load()
    assert loaded.id == "w1"
    assert loaded.examples == ["¡Hola!"]
    assert loaded.tags == ["greeting"]
    assert loaded.repetitions == 2
    assert loaded.next_review_date == now + timedelta(days=6)

    sql_store.delete(VOCABULARY, "w1")
    assert sql_store.get_all(VOCABULARY) == []


def test_sql_store_persists_session_json(sql_store, now):
    sql_store.put(
        SESSIONS,
        {
            "id": "s1",
            "scenario": "travel",
            "difficulty": "beginner",
            "started_at": now,
            "ended_at": now + timedelta(minutes=5),
            "message_count": 2,
            "target_words": [{"id": "w1", "spanish": "hola", "english": "hello"}],
            "words_used": {"w1": 2},
            "user_performance": {"w1": {"attempts": 2, "successful_uses": 1, "average_confidence": 0.7}},
            "conversation_history": [{"role": "assistant", "content": "¡Hola!"}],
        },
    )

    (record,) = sql_store.get_all(SESSIONS)
    assert record["words_used"] == {"w1": 2}
    assert record["conversation_history"][0]["content"] == "¡Hola!"


def test_sql_store_wraps_database_errors(db_engine, sql_store, make_item):
    with pytest.raises(StorageError):
        sql_store.get_all("grammar")

    with db_engine.begin() as connection:
        connection.exec_driver_sql("DROP TABLE vocabulary_items")

    with pytest.raises(StorageError) as excinfo:
        sql_store.put(VOCABULARY, make_item(id="w1").model_dump())
    assert isinstance(excinfo.value.__cause__, OperationalError)
    with pytest.raises(StorageError):
        sql_store.get_all(VOCABULARY)
