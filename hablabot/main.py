"""FastAPI application factory."""
from __future__ import annotations

from typing import Any, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from hablabot import __version__
from hablabot.api.v1 import api_router
from hablabot.config import settings
from hablabot.db.session import SessionLocal, init_db
from hablabot.services.item_store import ItemStore, SQLItemStore
from hablabot.services.llm_service import LLMService
from hablabot.services.session_service import ConversationSessionService
from hablabot.services.vocabulary import VocabularyService
from hablabot.utils.exceptions import HablaBotError, handle_hablabot_error


tags_metadata: List[dict[str, str]] = [
    {"name": "vocabulary", "description": "Manage the learner's vocabulary and SM-2 reviews."},
    {"name": "sessions", "description": "Run conversation sessions with the Spanish tutor."},
]


def _default_llm_service() -> Optional[LLMService]:
    try:
        return LLMService()
    except ValueError:
        logger.warning("No LLM provider configured; tutor replies are unavailable")
        return None


def create_app(store: Optional[ItemStore] = None, llm_service: Any = None) -> FastAPI:
    """Create and configure the FastAPI application instance."""

    if store is None:
        init_db()
        store = SQLItemStore(SessionLocal)
    if llm_service is None:
        llm_service = _default_llm_service()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Spanish conversation practice with spaced repetition.",
        version=__version__,
        openapi_tags=tags_metadata,
        docs_url=f"{settings.API_V1_STR}/docs",
        redoc_url=f"{settings.API_V1_STR}/redoc",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    vocabulary = VocabularyService(store)
    vocabulary.load()
    app.state.store = store
    app.state.vocabulary = vocabulary
    app.state.sessions = ConversationSessionService(vocabulary, store, llm_service)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.errors(), "message": "Validation failed"},
        )

    @app.exception_handler(HablaBotError)
    async def hablabot_exception_handler(request: Request, exc: HablaBotError) -> JSONResponse:
        http_exc = handle_hablabot_error(exc)
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})

    app.include_router(api_router, prefix=settings.API_V1_STR)
    return app
