"""FastAPI router for posting and browsing reviews."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from citysync.schemas.review import Review, ReviewCreate
from citysync.services.dependencies import get_locations_store
from citysync.services.locations_store import LocationsStore

router = APIRouter()


@router.get("/recent", response_model=list[Review])
async def recent_reviews(
    limit: int | None = Query(
        None, ge=1, le=100, description="Defaults to RECENT_REVIEWS_LIMIT."
    ),
    store: LocationsStore = Depends(get_locations_store),
) -> list[Review]:
    return list(store.get_recent_reviews(limit))


@router.post("", response_model=Review, status_code=status.HTTP_201_CREATED)
async def add_review(
    payload: ReviewCreate,
    store: LocationsStore = Depends(get_locations_store),
) -> Review:
    """Record a review and refresh the reviewed location's rating aggregate."""

    return await store.add_review(
        payload.location_id, payload.rating, payload.text, payload.images
    )
