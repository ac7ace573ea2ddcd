"""Vocabulary management endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status

from hablabot.api import deps
from hablabot.schemas import (
    ForecastDay,
    ImportReport,
    ReviewRequest,
    ReviewStatistics,
    VocabularyFilter,
    VocabularyItem,
    VocabularyItemCreate,
    VocabularyItemUpdate,
    VocabularyListResponse,
    VocabularyStatistics,
)
from hablabot.services.vocabulary import VocabularyService

router = APIRouter(prefix="/vocabulary", tags=["vocabulary"])


@router.get("/", response_model=VocabularyListResponse)
def list_vocabulary(
    search: str | None = Query(default=None, max_length=100),
    category: str | None = Query(default=None, max_length=50),
    difficulty: int | None = Query(default=None, ge=1, le=5),
    mastery_level: int | None = Query(default=None, ge=0, le=10),
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> VocabularyListResponse:
    """Return vocabulary items matching every supplied filter."""

    items = service.filter(
        VocabularyFilter(
            search=search, category=category, difficulty=difficulty, mastery_level=mastery_level
        )
    )
    return VocabularyListResponse(total=len(items), items=items[offset : offset + limit])


@router.post("/", response_model=VocabularyItem, status_code=status.HTTP_201_CREATED)
def create_vocabulary_item(
    payload: VocabularyItemCreate,
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> VocabularyItem:
    return service.add(payload)


@router.post("/import", response_model=ImportReport)
def import_vocabulary(
    rows: list[dict[str, Any]] = Body(...),
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> ImportReport:
    """Import a batch of rows; rejected rows are reported with their 1-based position."""

    return service.import_batch(rows)


@router.post("/import/csv", response_model=ImportReport)
async def import_vocabulary_csv(
    request: Request,
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> ImportReport:
    """Import CSV text sent as the raw request body."""

    body = await request.body()
    return service.import_csv(body.decode("utf-8-sig"))


@router.get("/export/csv")
def export_vocabulary_csv(
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> Response:
    return Response(
        content=service.export_csv(),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="vocabulary.csv"'},
    )


@router.get("/stats", response_model=VocabularyStatistics)
def vocabulary_statistics(
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> VocabularyStatistics:
    return service.statistics()


@router.get("/stats/review", response_model=ReviewStatistics)
def review_statistics(
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> ReviewStatistics:
    return service.review_statistics()


@router.get("/due", response_model=list[VocabularyItem])
def due_vocabulary(
    limit: int = Query(default=10, ge=1, le=100),
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> list[VocabularyItem]:
    """Return due words, most overdue first."""

    return service.words_for_review(limit)


@router.get("/forecast", response_model=list[ForecastDay])
def review_forecast(
    days: int = Query(default=7, ge=1, le=60),
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> list[ForecastDay]:
    return service.review_forecast(days)


@router.get("/{item_id}", response_model=VocabularyItem)
def get_vocabulary_item(
    item_id: str, service: VocabularyService = Depends(deps.get_vocabulary_service)
) -> VocabularyItem:
    return service.get(item_id)


@router.patch("/{item_id}", response_model=VocabularyItem)
def update_vocabulary_item(
    item_id: str,
    patch: VocabularyItemUpdate,
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> VocabularyItem:
    """Update descriptive fields; scheduling fields in the body are ignored."""

    return service.update(item_id, patch)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_vocabulary_item(
    item_id: str, service: VocabularyService = Depends(deps.get_vocabulary_service)
) -> Response:
    service.remove(item_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{item_id}/review", response_model=VocabularyItem)
def review_vocabulary_item(
    item_id: str,
    payload: ReviewRequest,
    service: VocabularyService = Depends(deps.get_vocabulary_service),
) -> VocabularyItem:
    """Apply one SM-2 review with the given 0-5 quality."""

    return service.record_review(item_id, payload.quality)
