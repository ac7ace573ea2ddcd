"""Shared API dependencies."""
from __future__ import annotations

from fastapi import Request

from hablabot.services.session_service import ConversationSessionService
from hablabot.services.vocabulary import VocabularyService


def get_vocabulary_service(request: Request) -> VocabularyService:
    """Return the vocabulary facade bound to the running application."""

    return request.app.state.vocabulary


def get_session_service(request: Request) -> ConversationSessionService:
    """Return the conversation session service bound to the running application."""

    return request.app.state.sessions
