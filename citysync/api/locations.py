"""FastAPI router exposing the locally synced locations."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from citysync.schemas.location import Location, LocationCreate
from citysync.schemas.review import Review
from citysync.services.dependencies import get_locations_store
from citysync.services.locations_store import LocationsStore

router = APIRouter()


@router.get("", response_model=list[Location])
async def search_locations(
    q: str = Query("", description="Matches name, address or category."),
    store: LocationsStore = Depends(get_locations_store),
) -> list[Location]:
    return list(store.search_locations(q))


@router.post("", response_model=Location, status_code=status.HTTP_201_CREATED)
async def add_location(
    payload: LocationCreate,
    store: LocationsStore = Depends(get_locations_store),
) -> Location:
    """Create a location with an empty rating aggregate."""

    return await store.add_location(payload)


@router.get("/{location_id}", response_model=Location)
async def get_location(
    location_id: str,
    store: LocationsStore = Depends(get_locations_store),
) -> Location:
    location = store.get_location_by_id(location_id)
    if location is None:
        raise HTTPException(status_code=404, detail="Location not found")
    return location


@router.get("/{location_id}/reviews", response_model=list[Review])
async def get_location_reviews(
    location_id: str,
    store: LocationsStore = Depends(get_locations_store),
) -> list[Review]:
    """Reviews for a location in collection order (newest additions first)."""

    return list(store.get_location_reviews(location_id))
