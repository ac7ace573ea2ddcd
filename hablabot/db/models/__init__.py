"""Database models package."""
from hablabot.db.models.session import ConversationSessionRow
from hablabot.db.models.vocabulary import VocabularyItemRow

__all__ = ["ConversationSessionRow", "VocabularyItemRow"]
