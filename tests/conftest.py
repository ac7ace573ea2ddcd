"""Pytest fixtures shared by the HablaBot test suite."""

import random
from collections.abc import Generator
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from hablabot.db import models  # noqa: F401  # Imported for side effects
from hablabot.db.base import Base
from hablabot.main import create_app
from hablabot.schemas import VocabularyItem
from hablabot.services.item_store import InMemoryItemStore, SQLItemStore
from hablabot.services.llm_service import LLMProviderError, LLMResult
from hablabot.services.session_service import ConversationSessionService
from hablabot.services.vocabulary import VocabularyService

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class StubLLMService:
    """Stand-in for LLMService returning canned tutor replies."""

    def __init__(self, replies: list[str] | None = None):
        self.replies = list(replies or [])
        self.should_fail = False
        self.calls: list[list[dict[str, str]]] = []
        self.kwargs: list[dict] = []

    def generate_chat_completion(self, messages, **kwargs):
        self.calls.append(list(messages))
        self.kwargs.append(kwargs)
        if self.should_fail:
            raise LLMProviderError("stub failure")
        content = self.replies.pop(0) if self.replies else "¡Muy bien! ¿Y qué más?"
        return LLMResult(
            provider="stub",
            model="stub-model",
            content=content,
            prompt_tokens=10,
            completion_tokens=5,
            total_tokens=15,
            raw_response={},
        )


@pytest.fixture()
def now() -> datetime:
    return NOW


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def make_item():
    def _make(**overrides) -> VocabularyItem:
        data = {
            "id": overrides.pop("id", None) or f"w-{overrides.get('spanish', 'x')}",
            "spanish": "hola",
            "english": "hello",
            "difficulty": 1,
            "next_review_date": NOW,
            "created_at": NOW - timedelta(days=30),
        }
        data.update(overrides)
        return VocabularyItem(**data)

    return _make


@pytest.fixture()
def store() -> InMemoryItemStore:
    return InMemoryItemStore()


@pytest.fixture()
def vocabulary(store) -> VocabularyService:
    service = VocabularyService(store)
    service.load()
    return service


@pytest.fixture()
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def sql_store(db_engine) -> SQLItemStore:
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=db_engine, expire_on_commit=False
    )
    return SQLItemStore(TestingSessionLocal)


@pytest.fixture()
def llm() -> StubLLMService:
    return StubLLMService()


@pytest.fixture()
def session_service(vocabulary, store, llm, clock) -> ConversationSessionService:
    return ConversationSessionService(
        vocabulary,
        store,
        llm,
        session_length_minutes=15,
        success_confidence=0.7,
        words_per_session=5,
        default_difficulty="beginner",
        max_history_messages=20,
        clock=clock,
        rng=random.Random(7),
    )


@pytest.fixture()
def client(store, llm) -> Generator[TestClient, None, None]:
    app = create_app(store=store, llm_service=llm)
    with TestClient(app) as test_client:
        yield test_client
