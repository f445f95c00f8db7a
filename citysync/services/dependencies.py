"""FastAPI dependency wiring for the CitySync services.

Stores are created once by the application lifespan and attached to
``app.state``; the factories below hand them to route handlers so tests can
swap them through ``app.state`` or ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Header, HTTPException, Request, status

from citysync.errors import StoreNotReadyError
from citysync.services.location_preferences import LocationPreferences
from citysync.services.locations_store import LocationsStore, StoreState
from citysync.services.profile_client import ProfileClient
from citysync.services.profile_store import ProfileService
from citysync.services.session_store import SessionStore

ANONYMOUS_USER_ID = "anonymous-user"
UNAUTHORIZED_MESSAGE = "You must be logged in to access this resource"


def get_locations_store(request: Request) -> LocationsStore:
    """Return the shared :class:`LocationsStore`, refusing requests until it is loaded."""

    store: LocationsStore | None = getattr(request.app.state, "locations_store", None)
    if store is None or not store.is_ready:
        raise StoreNotReadyError("Locations are still loading")
    return store


def get_session_store(request: Request) -> SessionStore:
    session: SessionStore | None = getattr(request.app.state, "session_store", None)
    if session is None or session.state is not StoreState.READY:
        raise StoreNotReadyError("Session is still loading")
    return session


def get_location_preferences(request: Request) -> LocationPreferences:
    preferences: LocationPreferences | None = getattr(
        request.app.state, "location_preferences", None
    )
    if preferences is None or preferences.state is not StoreState.READY:
        raise StoreNotReadyError("Saved location is still loading")
    return preferences


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


def get_profile_client(request: Request) -> ProfileClient:
    return request.app.state.profile_client


def get_current_user_id(
    x_user_id: str | None = Header(None, alias="x-user-id"),
) -> str:
    """Resolve the caller from the ``x-user-id`` header.

    The header is trusted as-is; anonymous callers are rejected with 401.
    """

    if not x_user_id or x_user_id == ANONYMOUS_USER_ID:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE
        )
    return x_user_id


__all__ = [
    "ANONYMOUS_USER_ID",
    "get_current_user_id",
    "get_location_preferences",
    "get_locations_store",
    "get_profile_client",
    "get_profile_service",
    "get_session_store",
]
