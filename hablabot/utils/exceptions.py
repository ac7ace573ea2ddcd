"""Custom exception classes and error handling utilities."""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status
from loguru import logger


class HablaBotError(Exception):
    """Base exception for the application."""

    status_code: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class ValidationError(HablaBotError):
    """Required input is missing or malformed."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class DuplicateWordError(HablaBotError):
    """A vocabulary item with the same Spanish text already exists."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(HablaBotError):
    """An identifier does not reference a known record."""

    status_code = status.HTTP_404_NOT_FOUND


class SessionError(HablaBotError):
    """Conversation session state errors."""

    status_code = status.HTTP_409_CONFLICT


class NoActiveSessionError(SessionError):
    """A turn was submitted while no session is active."""


class EmptyInputError(SessionError):
    """A learner turn was blank after trimming."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class SessionAlreadyEndedError(SessionError):
    """The session has already been finalized."""


class SessionAlreadyActiveError(SessionError):
    """A session was started on a tracker that is already running."""


class StorageError(HablaBotError):
    """The item store failed to read or write a record."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class GenerationError(HablaBotError):
    """The dialogue generator could not produce a reply."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


def handle_hablabot_error(error: HablaBotError) -> HTTPException:
    """Translate a domain error into an HTTP exception."""

    if error.status_code >= 500:
        logger.error(f"{type(error).__name__}: {error.message}")
    else:
        logger.warning(f"{type(error).__name__}: {error.message}")

    if isinstance(error, StorageError):
        detail: Any = "Storage operation failed. Please try again later."
    elif isinstance(error, GenerationError):
        detail = "AI service is temporarily unavailable. Please try again later."
    elif error.details:
        detail = {"message": error.message, "details": error.details}
    else:
        detail = error.message
    return HTTPException(status_code=error.status_code, detail=detail)
