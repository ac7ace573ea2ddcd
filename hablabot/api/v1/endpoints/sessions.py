"""Conversation session endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from hablabot.api import deps
from hablabot.schemas import (
    SessionRecord,
    SessionStartRequest,
    SessionStartResponse,
    SessionStats,
    SessionSummaryResponse,
    SessionTurnRequest,
    SessionTurnResponse,
)
from hablabot.services.session_service import ConversationSessionService

router = APIRouter(prefix="/sessions", tags=["sessions"])


@router.post("/", response_model=SessionStartResponse, status_code=status.HTTP_201_CREATED)
def start_session(
    payload: SessionStartRequest,
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionStartResponse:
    """Select target words and open a new tutor conversation."""

    return service.start(payload)


@router.post("/turns", response_model=SessionTurnResponse)
def send_turn(
    payload: SessionTurnRequest,
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionTurnResponse:
    return service.send(payload.content, payload.confidence)


@router.post("/pause", response_model=SessionStats)
def pause_session(
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionStats:
    return service.pause()


@router.post("/resume", response_model=SessionStats)
def resume_session(
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionStats:
    return service.resume()


@router.post("/end", response_model=SessionSummaryResponse)
def end_session(
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionSummaryResponse:
    """End the running session and schedule reviews for the words used."""

    return service.end()


@router.get("/current", response_model=SessionStats)
def current_session(
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> SessionStats:
    return service.status()


@router.get("/history", response_model=list[SessionRecord])
def session_history(
    limit: int = Query(default=10, ge=1, le=100),
    service: ConversationSessionService = Depends(deps.get_session_service),
) -> list[SessionRecord]:
    return service.recent_sessions(limit)
