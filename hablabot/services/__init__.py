"""Application services."""

from hablabot.services.item_store import InMemoryItemStore, ItemStore, SQLItemStore
from hablabot.services.session_service import ConversationSessionService
from hablabot.services.session_tracker import SessionTracker, TrackerState
from hablabot.services.vocabulary import VocabularyService

__all__ = [
    "ConversationSessionService",
    "InMemoryItemStore",
    "ItemStore",
    "SQLItemStore",
    "SessionTracker",
    "TrackerState",
    "VocabularyService",
]
