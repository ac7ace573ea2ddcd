"""Pydantic schemas package."""

from hablabot.schemas.session import (
    ConversationMessage,
    ReviewedWord,
    SessionConfig,
    SessionRecord,
    SessionStartRequest,
    SessionStartResponse,
    SessionStats,
    SessionSummaryResponse,
    SessionTurnRequest,
    SessionTurnResponse,
    TargetWord,
    TurnRecord,
    WordPerformance,
)
from hablabot.schemas.vocabulary import (
    ForecastDay,
    ImportReport,
    ImportRowError,
    ReviewRequest,
    ReviewStatistics,
    VocabularyFilter,
    VocabularyItem,
    VocabularyItemCreate,
    VocabularyItemUpdate,
    VocabularyListResponse,
    VocabularyStatistics,
)

__all__ = [
    "ConversationMessage",
    "ReviewedWord",
    "SessionConfig",
    "SessionRecord",
    "SessionStartRequest",
    "SessionStartResponse",
    "SessionStats",
    "SessionSummaryResponse",
    "SessionTurnRequest",
    "SessionTurnResponse",
    "TargetWord",
    "TurnRecord",
    "WordPerformance",
    "ForecastDay",
    "ImportReport",
    "ImportRowError",
    "ReviewRequest",
    "ReviewStatistics",
    "VocabularyFilter",
    "VocabularyItem",
    "VocabularyItemCreate",
    "VocabularyItemUpdate",
    "VocabularyListResponse",
    "VocabularyStatistics",
]
