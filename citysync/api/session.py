"""FastAPI router for the locally persisted sign-in session."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status

from citysync.errors import StorageUnavailableError
from citysync.schemas.session import (
    LoginRequest,
    ProfileSyncResult,
    RegisterRequest,
    SessionState,
)
from citysync.schemas.user import ProfileUpdate, User
from citysync.services.dependencies import (
    UNAUTHORIZED_MESSAGE,
    get_profile_client,
    get_session_store,
)
from citysync.services.profile_client import ProfileClient
from citysync.services.session_store import SessionStore

router = APIRouter()


def _require_user(session: SessionStore) -> User:
    if session.user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=UNAUTHORIZED_MESSAGE
        )
    return session.user


@router.get("", response_model=SessionState)
async def current_session(
    session: SessionStore = Depends(get_session_store),
) -> SessionState:
    return SessionState(user=session.user)


@router.post("/login", response_model=User)
async def login(
    payload: LoginRequest,
    session: SessionStore = Depends(get_session_store),
) -> User:
    """Sign in locally; the password is not verified."""

    if not await session.login(payload.email, payload.password):
        raise StorageUnavailableError("Could not save the session")
    return _require_user(session)


@router.post("/register", response_model=User, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session: SessionStore = Depends(get_session_store),
) -> User:
    if not await session.register(payload.email, payload.password, payload.name):
        raise StorageUnavailableError("Could not save the session")
    return _require_user(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(session: SessionStore = Depends(get_session_store)) -> Response:
    await session.logout()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/profile", response_model=ProfileSyncResult)
async def edit_profile(
    payload: ProfileUpdate,
    session: SessionStore = Depends(get_session_store),
    client: ProfileClient = Depends(get_profile_client),
) -> ProfileSyncResult:
    """Save the edit locally, then push it to the remote profile store.

    A failed local write surfaces as a 503; a failed push only clears ``synced``.
    """

    _require_user(session)
    synced = await session.push_profile(client, payload)
    return ProfileSyncResult(user=_require_user(session), synced=synced)


@router.post("/profile/refresh", response_model=User)
async def refresh_profile(
    session: SessionStore = Depends(get_session_store),
    client: ProfileClient = Depends(get_profile_client),
) -> User:
    """Overlay the remote profile document on the signed-in user."""

    user = _require_user(session)
    refreshed = await session.refresh_profile(client)
    return refreshed or user
