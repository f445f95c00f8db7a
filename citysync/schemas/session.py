"""Payloads for the local sign-in session routes."""

from __future__ import annotations

from pydantic import Field

from citysync.schemas.common import CamelModel
from citysync.schemas.user import User


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., min_length=1)


class RegisterRequest(LoginRequest):
    name: str = Field(..., min_length=1, max_length=100)


class SessionState(CamelModel):
    """The signed-in user, or ``None`` when nobody is signed in."""

    user: User | None = None


class ProfileSyncResult(CamelModel):
    """Outcome of a local profile edit that is also pushed to the profile store.

    ``synced`` is ``False`` when the remote store could not be updated; the
    local edit is kept either way.
    """

    user: User
    synced: bool


__all__ = ["LoginRequest", "ProfileSyncResult", "RegisterRequest", "SessionState"]
