"""Key-value persistence for vocabulary items and session records.

Records are plain dictionaries keyed by ``id``. The store is deliberately
dumb: it performs no validation and no retries; any backend failure is
surfaced as :class:`StorageError`.
"""
from __future__ import annotations

import copy
from typing import Any, Callable, Dict, List, Protocol

from loguru import logger
from sqlalchemy import inspect, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hablabot.db.base import Base
from hablabot.db.models import ConversationSessionRow, VocabularyItemRow
from hablabot.utils.exceptions import StorageError

VOCABULARY = "vocabulary"
SESSIONS = "sessions"

Record = Dict[str, Any]


class ItemStore(Protocol):
    """Protocol shared by item store implementations."""

    def get_all(self, kind: str) -> List[Record]:  # pragma: no cover - interface definition
        """Return every record of ``kind``."""

    def put(self, kind: str, record: Record) -> None:  # pragma: no cover - interface definition
        """Insert or replace ``record``."""

    def delete(self, kind: str, item_id: str) -> None:  # pragma: no cover - interface definition
        """Remove the record with ``item_id`` if present."""


class InMemoryItemStore:
    """Dictionary-backed store used for tests and ephemeral profiles."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, Record]] = {VOCABULARY: {}, SESSIONS: {}}

    def _bucket(self, kind: str) -> dict[str, Record]:
        try:
            return self._records[kind]
        except KeyError as exc:
            raise StorageError(f"Unknown record kind: {kind}") from exc

    def get_all(self, kind: str) -> List[Record]:
        return [copy.deepcopy(record) for record in self._bucket(kind).values()]

    def put(self, kind: str, record: Record) -> None:
        if not record.get("id"):
            raise StorageError("Records require an id", {"kind": kind})
        self._bucket(kind)[str(record["id"])] = copy.deepcopy(record)

    def delete(self, kind: str, item_id: str) -> None:
        self._bucket(kind).pop(item_id, None)


class SQLItemStore:
    """Item store persisting records through SQLAlchemy."""

    MODELS: dict[str, type[Base]] = {
        VOCABULARY: VocabularyItemRow,
        SESSIONS: ConversationSessionRow,
    }

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def _model(self, kind: str) -> type[Base]:
        model = self.MODELS.get(kind)
        if model is None:
            raise StorageError(f"Unknown record kind: {kind}")
        return model

    @staticmethod
    def _columns(model: type[Base]) -> list[str]:
        return [attr.key for attr in inspect(model).mapper.column_attrs]

    def get_all(self, kind: str) -> List[Record]:
        model = self._model(kind)
        columns = self._columns(model)
        db = self.session_factory()
        try:
            rows = db.scalars(select(model)).all()
            return [{column: getattr(row, column) for column in columns} for row in rows]
        except SQLAlchemyError as exc:
            logger.error("Item store read failed", kind=kind, error=str(exc))
            raise StorageError(f"Failed to load {kind}", {"kind": kind}) from exc
        finally:
            db.close()

    def put(self, kind: str, record: Record) -> None:
        model = self._model(kind)
        if not record.get("id"):
            raise StorageError("Records require an id", {"kind": kind})
        values = {key: value for key, value in record.items() if key in self._columns(model)}
        db = self.session_factory()
        try:
            db.merge(model(**values))
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Item store write failed", kind=kind, record_id=record["id"], error=str(exc))
            raise StorageError(f"Failed to save {kind} record", {"id": record["id"]}) from exc
        finally:
            db.close()

    def delete(self, kind: str, item_id: str) -> None:
        model = self._model(kind)
        db = self.session_factory()
        try:
            row = db.get(model, item_id)
            if row is not None:
                db.delete(row)
                db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.error("Item store delete failed", kind=kind, record_id=item_id, error=str(exc))
            raise StorageError(f"Failed to delete {kind} record", {"id": item_id}) from exc
        finally:
            db.close()


__all__ = ["ItemStore", "InMemoryItemStore", "SQLItemStore", "VOCABULARY", "SESSIONS"]
