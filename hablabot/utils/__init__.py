"""Utility helpers package."""

from hablabot.utils.exceptions import (
    DuplicateWordError,
    EmptyInputError,
    GenerationError,
    HablaBotError,
    NoActiveSessionError,
    NotFoundError,
    SessionAlreadyActiveError,
    SessionAlreadyEndedError,
    SessionError,
    StorageError,
    ValidationError,
)

__all__ = [
    "DuplicateWordError",
    "EmptyInputError",
    "GenerationError",
    "HablaBotError",
    "NoActiveSessionError",
    "NotFoundError",
    "SessionAlreadyActiveError",
    "SessionAlreadyEndedError",
    "SessionError",
    "StorageError",
    "ValidationError",
]
