"""Pydantic schemas describing location reviews."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from citysync.schemas.common import CamelModel


class ReviewCreate(CamelModel):
    """Request payload for posting a review.

    The 1-5 rating range and the non-blank text are enforced here, at the
    caller boundary; the sync layer itself stores whatever rating it is given.
    """

    location_id: str = Field(..., min_length=1)
    rating: int = Field(..., ge=1, le=5)
    text: str = Field(..., max_length=5000)
    images: list[str] | None = Field(None, description="Optional photo URLs.")

    @field_validator("text")
    @classmethod
    def _require_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Review text must not be blank")
        return cleaned


class Review(CamelModel):
    """Review as held in memory and persisted in the ``reviews`` slot."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(..., min_length=1)
    location_id: str
    user_id: str
    user_name: str
    user_avatar: str | None = None
    rating: int
    text: str
    images: list[str] | None = None
    created_at: datetime

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Naive timestamps are read as UTC so every value stays comparable.
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


__all__ = ["Review", "ReviewCreate"]
