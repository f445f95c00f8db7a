"""Schemas for the signed-in user session and the remote profile document."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from citysync.schemas.common import CamelModel


class ProfileLocation(CamelModel):
    """Coordinates optionally attached to a profile."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


class ProfileFields(CamelModel):
    """Editable profile fields shared by the session user and remote documents."""

    name: str | None = Field(None, max_length=100)
    bio: str | None = Field(None, max_length=500)
    photo: str | None = None
    profile_photo: str | None = None
    hobbies: list[str] | None = None
    interests: list[str] | None = None
    city: str | None = Field(None, max_length=100)
    country: str | None = Field(None, max_length=100)
    location: ProfileLocation | None = None


class ProfileUpdate(ProfileFields):
    """Partial update accepted by ``PATCH /api/user/profile``.

    Fields left unset (or explicitly ``None``) are not written to the document.
    """

    @field_validator("hobbies", "interests")
    @classmethod
    def _clean_tokens(cls, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        cleaned = [token.strip() for token in value if token.strip()]
        if len(cleaned) != len(value):
            raise ValueError("Entries cannot be empty or whitespace-only")
        if any(len(token) > 50 for token in cleaned):
            raise ValueError("Entries are limited to 50 characters")
        if len(cleaned) > 10:
            raise ValueError("At most 10 entries are allowed")
        return cleaned

    def changes(self) -> dict[str, Any]:
        """Return only the fields carrying a value, keyed by their wire names."""

        return self.to_wire()


class ProfileUpdateResult(CamelModel):
    success: bool
    message: str


class User(ProfileFields):
    """Signed-in user persisted in the ``user`` slot."""

    id: str = Field(..., min_length=1)
    email: str = ""
    name: str = ""
    avatar: str | None = None
    joined_date: datetime | None = None

    @field_validator("id")
    @classmethod
    def _require_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("User id must not be blank")
        return value


__all__ = [
    "ProfileFields",
    "ProfileLocation",
    "ProfileUpdate",
    "ProfileUpdateResult",
    "User",
]
