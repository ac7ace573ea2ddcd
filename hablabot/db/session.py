"""Database session and engine management."""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from loguru import logger

from hablabot.config import settings
from hablabot.db.base import Base


def build_engine(url: str) -> Engine:
    """Create an engine, relaxing SQLite's same-thread check for the API threadpool."""

    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Keep objects usable after commit
)


def init_db(bind: Engine | None = None) -> None:
    """Create the item store tables when they do not exist yet."""

    from hablabot.db import models  # noqa: F401  # Imported for side effects

    target = bind or engine
    Base.metadata.create_all(bind=target)
    logger.info("Database tables ensured", url=str(target.url))
