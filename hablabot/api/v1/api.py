"""API router for version 1."""
from fastapi import APIRouter

from hablabot.api.v1.endpoints import sessions, vocabulary


api_router = APIRouter()
api_router.include_router(vocabulary.router)
api_router.include_router(sessions.router)
