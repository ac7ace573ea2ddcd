"""Vocabulary store facade: the authoritative in-memory word list."""
from __future__ import annotations

import csv
import io
import math
import threading
import uuid
from collections import Counter
from datetime import datetime
from typing import Any, Iterable, Mapping

from loguru import logger
from pydantic import BaseModel

from hablabot.core.srs import (
    SelectionOptions,
    review_forecast,
    review_statistics,
    schedule_review,
    select_session_words,
    words_for_review,
)
from hablabot.core.srs.sm2 import is_due
from hablabot.schemas.vocabulary import (
    SCHEDULING_FIELDS,
    ForecastDay,
    ImportReport,
    ImportRowError,
    ReviewStatistics,
    VocabularyFilter,
    VocabularyItem,
    VocabularyStatistics,
)
from hablabot.services.item_store import VOCABULARY, ItemStore
from hablabot.utils.exceptions import (
    DuplicateWordError,
    HablaBotError,
    NotFoundError,
    ValidationError,
)

DESCRIPTIVE_FIELDS = ("spanish", "english", "phonetic", "difficulty", "category", "examples", "tags")
EXPORT_COLUMNS = [
    "spanish",
    "english",
    "phonetic",
    "difficulty",
    "category",
    "examples",
    "tags",
    "mastery_level",
]


def _parse_difficulty(value: Any) -> int:
    try:
        difficulty = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return max(1, min(5, difficulty))


def _split(value: Any, separator: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.split(separator)
    else:
        parts = [str(part) for part in value]
    return [part.strip() for part in parts if part and part.strip()]


def _as_dict(payload: Mapping[str, Any] | BaseModel, *, exclude_unset: bool = False) -> dict[str, Any]:
    if isinstance(payload, BaseModel):
        return payload.model_dump(exclude_unset=exclude_unset)
    return dict(payload)


class VocabularyService:
    """Own the learner's vocabulary and mediate every write to the item store."""

    DEFAULT_CATEGORIES = (
        "general",
        "food",
        "travel",
        "family",
        "work",
        "health",
        "shopping",
        "emergency",
        "education",
        "entertainment",
    )

    def __init__(self, store: ItemStore) -> None:
        self.store = store
        self._items: list[VocabularyItem] = []
        # API handlers run in a threadpool; every read-modify-persist runs under it.
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading and lookup
    # ------------------------------------------------------------------
    def load(self) -> list[VocabularyItem]:
        """Replace the in-memory list with the store's contents."""

        with self._lock:
            records = self.store.get_all(VOCABULARY)
            self._items = [VocabularyItem.model_validate(record) for record in records]
            logger.info("Loaded vocabulary", count=len(self._items))
            return self.all()

    def all(self) -> list[VocabularyItem]:
        with self._lock:
            return list(self._items)

    def find(self, item_id: str) -> VocabularyItem | None:
        return next((item for item in self.all() if item.id == item_id), None)

    def get(self, item_id: str) -> VocabularyItem:
        item = self.find(item_id)
        if item is None:
            raise NotFoundError("Vocabulary item not found", {"id": item_id})
        return item

    def _index_of(self, item_id: str) -> int:
        for index, item in enumerate(self._items):
            if item.id == item_id:
                return index
        raise NotFoundError("Vocabulary item not found", {"id": item_id})

    def _find_by_spanish(self, spanish: str, *, exclude_id: str | None = None) -> VocabularyItem | None:
        needle = spanish.strip().lower()
        for item in self._items:
            if item.id != exclude_id and item.spanish.lower() == needle:
                return item
        return None

    def _persist(self, item: VocabularyItem) -> None:
        self.store.put(VOCABULARY, item.model_dump())

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    def _build_item(self, draft: Mapping[str, Any] | BaseModel) -> VocabularyItem:
        data = _as_dict(draft)
        spanish = str(data.get("spanish") or "").strip()
        english = str(data.get("english") or "").strip()
        if not spanish or not english:
            raise ValidationError("Spanish and English translations are required")

        if self._find_by_spanish(spanish) is not None:
            raise DuplicateWordError(
                f'"{spanish}" already exists in your vocabulary', {"spanish": spanish}
            )

        return VocabularyItem(
            id=uuid.uuid4().hex,
            spanish=spanish,
            english=english,
            phonetic=str(data.get("phonetic") or "").strip(),
            difficulty=_parse_difficulty(data.get("difficulty")),
            category=str(data.get("category") or "").strip() or "general",
            examples=_split(data.get("examples"), ";"),
            tags=_split(data.get("tags"), ","),
        )

    def add(self, draft: Mapping[str, Any] | BaseModel) -> VocabularyItem:
        """Validate, persist and append a new vocabulary item."""

        with self._lock:
            item = self._build_item(draft)
            self._persist(item)
            self._items.append(item)
        logger.info("Added vocabulary item", word_id=item.id, spanish=item.spanish)
        return item

    def update(self, item_id: str, patch: Mapping[str, Any] | BaseModel) -> VocabularyItem:
        """Merge descriptive fields from ``patch``; scheduling fields are ignored."""

        with self._lock:
            return self._update(item_id, patch)

    def _update(self, item_id: str, patch: Mapping[str, Any] | BaseModel) -> VocabularyItem:
        index = self._index_of(item_id)
        existing = self._items[index]
        changes = _as_dict(patch, exclude_unset=True)

        ignored = sorted(key for key in changes if key in SCHEDULING_FIELDS)
        if ignored:
            logger.debug("Ignoring scheduling fields in patch", word_id=item_id, fields=ignored)

        merged: dict[str, Any] = {}
        for key in DESCRIPTIVE_FIELDS:
            if key not in changes or changes[key] is None:
                continue
            value = changes[key]
            if key in ("spanish", "english"):
                value = str(value).strip()
                if not value:
                    raise ValidationError("Spanish and English translations are required")
            elif key == "difficulty":
                value = _parse_difficulty(value)
            elif key == "examples":
                value = _split(value, ";")
            elif key == "tags":
                value = _split(value, ",")
            else:
                value = str(value).strip()
            merged[key] = value

        if "spanish" in merged and self._find_by_spanish(merged["spanish"], exclude_id=item_id):
            raise DuplicateWordError(
                f'"{merged["spanish"]}" already exists in your vocabulary',
                {"spanish": merged["spanish"]},
            )

        # Revalidate so the tag de-duplication applies to patched values too.
        updated = VocabularyItem.model_validate({**existing.model_dump(), **merged})
        self._persist(updated)
        self._items[index] = updated
        logger.info("Updated vocabulary item", word_id=item_id, fields=sorted(merged))
        return updated

    def remove(self, item_id: str) -> None:
        """Delete an item; past session records keep their own word snapshots."""

        with self._lock:
            index = self._index_of(item_id)
            self.store.delete(VOCABULARY, item_id)
            removed = self._items.pop(index)
        logger.info("Deleted vocabulary item", word_id=item_id, spanish=removed.spanish)

    def record_review(
        self, item_id: str, quality: float, *, now: datetime | None = None
    ) -> VocabularyItem:
        """Reschedule an item after a review and persist the result."""

        with self._lock:
            index = self._index_of(item_id)
            updated = schedule_review(self._items[index], quality, now=now)
            self._persist(updated)
            self._items[index] = updated
        logger.info(
            "Recorded review",
            word_id=item_id,
            quality=updated.last_quality,
            interval=updated.interval,
            mastery=updated.mastery_level,
        )
        return updated

    def import_batch(self, rows: Iterable[Mapping[str, Any]]) -> ImportReport:
        """Add each row independently; bad rows are reported, not fatal."""

        report = ImportReport()
        with self._lock:
            for row_number, row in enumerate(rows, start=1):
                try:
                    item = self.add(row)
                except HablaBotError as exc:
                    report.errors.append(ImportRowError(row=row_number, reason=exc.message))
                    continue
                report.items.append(item)
        report.imported = len(report.items)
        logger.info("Imported vocabulary", imported=report.imported, errors=len(report.errors))
        return report

    def import_csv(self, text: str) -> ImportReport:
        """Import rows from CSV text with a header line."""

        reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
        rows = [
            {(key or "").strip().lower(): value for key, value in row.items()}
            for row in reader
        ]
        return self.import_batch(rows)

    def export_csv(self) -> str:
        """Serialize the vocabulary to CSV with the import column layout."""

        buffer = io.StringIO()
        writer = csv.DictWriter(buffer, fieldnames=EXPORT_COLUMNS, lineterminator="\n")
        writer.writeheader()
        for item in self.all():
            writer.writerow(
                {
                    "spanish": item.spanish,
                    "english": item.english,
                    "phonetic": item.phonetic,
                    "difficulty": item.difficulty,
                    "category": item.category,
                    "examples": ";".join(item.examples),
                    "tags": ",".join(item.tags),
                    "mastery_level": item.mastery_level,
                }
            )
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------
    def filter(self, filters: VocabularyFilter | Mapping[str, Any] | None = None) -> list[VocabularyItem]:
        """Return items matching every supplied filter."""

        if filters is None:
            filters = VocabularyFilter()
        elif not isinstance(filters, VocabularyFilter):
            filters = VocabularyFilter.model_validate(dict(filters))

        search = (filters.search or "").strip().lower()
        results: list[VocabularyItem] = []
        for item in self.all():
            if search and not (
                search in item.spanish.lower()
                or search in item.english.lower()
                or search in item.category.lower()
                or any(search in tag.lower() for tag in item.tags)
            ):
                continue
            if filters.category and item.category != filters.category:
                continue
            if filters.difficulty is not None and item.difficulty != filters.difficulty:
                continue
            if filters.mastery_level is not None and (
                math.floor(item.mastery_level or 0) != filters.mastery_level
            ):
                continue
            results.append(item)
        return results

    def categories(self) -> list[str]:
        used = {item.category for item in self.all()}
        return sorted(set(self.DEFAULT_CATEGORIES) | used)

    def select_session_words(
        self,
        options: SelectionOptions | Mapping[str, Any] | None = None,
        *,
        now: datetime | None = None,
    ) -> list[VocabularyItem]:
        return select_session_words(self.all(), options, now=now)

    def words_for_review(self, limit: int = 10, *, now: datetime | None = None) -> list[VocabularyItem]:
        return words_for_review(self.all(), now)[: max(0, limit)]

    def review_statistics(self, *, now: datetime | None = None) -> ReviewStatistics:
        return review_statistics(self.all(), now)

    def review_forecast(self, days: int = 7, *, now: datetime | None = None) -> list[ForecastDay]:
        return review_forecast(self.all(), days, now)

    def statistics(self, *, now: datetime | None = None) -> VocabularyStatistics:
        """Return counts by category, difficulty and whole mastery level."""

        items = self.all()
        total_mastery = sum(item.mastery_level or 0.0 for item in items)
        average = (
            math.floor(total_mastery / len(items) * 10 + 0.5) / 10 if items else 0.0
        )
        return VocabularyStatistics(
            total=len(items),
            by_category=dict(Counter(item.category for item in items)),
            by_difficulty=dict(Counter(item.difficulty for item in items)),
            by_mastery_level=dict(
                Counter(math.floor(item.mastery_level or 0) for item in items)
            ),
            average_mastery=average,
            words_for_review=sum(1 for item in items if is_due(item, now)),
        )


__all__ = ["VocabularyService", "DESCRIPTIVE_FIELDS"]
