"""Pydantic schemas describing locations and their aggregate rating."""

from __future__ import annotations

from pydantic import ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from citysync.schemas.common import CamelModel


class LocationBase(CamelModel):
    """Fields supplied by the caller when a location is created."""

    name: str = Field(..., description="Display name shown on cards and map markers.")
    address: str = Field(..., description="Human readable street address.")
    category: str = Field(
        "Restaurant",
        description="Free-text tag such as Restaurant, Cafe or Park.",
    )
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    image: str | None = Field(None, description="Optional cover image URL.")


class LocationCreate(LocationBase):
    """Payload for adding a location; the server assigns the identifier."""

    @field_validator("name", "address")
    @classmethod
    def _require_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("Must not be blank once whitespace is removed")
        return cleaned


class Location(LocationBase):
    """Location as held in memory and persisted in the ``locations`` slot.

    ``average_rating`` and ``total_reviews`` are derived from the reviews that
    reference this location and are only rewritten by the sync layer.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    id: str = Field(..., min_length=1)
    average_rating: float = Field(
        0.0, description="Mean review rating, kept unrounded at rest."
    )
    total_reviews: int = Field(0, ge=0, description="Number of reviews counted.")


__all__ = ["Location", "LocationBase", "LocationCreate"]
