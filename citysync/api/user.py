"""FastAPI router for the signed-in user's remote profile document."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from citysync.schemas.user import ProfileUpdate, ProfileUpdateResult
from citysync.services.dependencies import get_current_user_id, get_profile_service
from citysync.services.profile_store import ProfileService

router = APIRouter()


@router.get("/profile")
async def get_profile(
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> dict[str, Any] | None:
    """Return the stored profile document, or ``null`` when none exists yet."""

    return await service.get_profile(user_id)


@router.patch("/profile", response_model=ProfileUpdateResult)
async def update_profile(
    payload: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service),
) -> ProfileUpdateResult:
    """Merge the supplied fields into the caller's profile, creating it if needed."""

    return await service.update_profile(user_id, payload)
