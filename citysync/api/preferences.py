"""FastAPI router for the saved city and country."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from citysync.errors import StorageUnavailableError
from citysync.schemas.preferences import (
    DetectedLocation,
    LocationPreferenceUpdate,
    LocationPreferenceView,
)
from citysync.services.dependencies import get_location_preferences
from citysync.services.location_preferences import (
    SAVE_FAILED_MESSAGE,
    LocationPreferences,
)

router = APIRouter()


def _view(preferences: LocationPreferences) -> LocationPreferenceView:
    return LocationPreferenceView(
        city=preferences.city,
        country=preferences.country,
        last_geocoded_session=preferences.last_geocoded_ms,
        needs_geocode=preferences.needs_geocode,
        error=preferences.error,
    )


@router.get("/location", response_model=LocationPreferenceView)
async def get_saved_location(
    preferences: LocationPreferences = Depends(get_location_preferences),
) -> LocationPreferenceView:
    return _view(preferences)


@router.put("/location", response_model=LocationPreferenceView)
async def update_saved_location(
    payload: LocationPreferenceUpdate,
    preferences: LocationPreferences = Depends(get_location_preferences),
) -> LocationPreferenceView:
    """Save a manually entered city and country."""

    if not await preferences.update_user_location(payload.city, payload.country):
        if preferences.error == SAVE_FAILED_MESSAGE:
            raise StorageUnavailableError(SAVE_FAILED_MESSAGE)
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=preferences.error
        )
    return _view(preferences)


@router.post("/location/detected", response_model=LocationPreferenceView)
async def record_detected_location(
    payload: DetectedLocation,
    preferences: LocationPreferences = Depends(get_location_preferences),
) -> LocationPreferenceView:
    """Store a reverse-geocoded city and country and restart the geocode window."""

    if await preferences.record_detected_location(payload.city, payload.country) is None:
        raise StorageUnavailableError(SAVE_FAILED_MESSAGE)
    return _view(preferences)


@router.delete("/location/error", response_model=LocationPreferenceView)
async def clear_saved_location_error(
    preferences: LocationPreferences = Depends(get_location_preferences),
) -> LocationPreferenceView:
    preferences.clear_error()
    return _view(preferences)
