"""Payloads for the saved city and country preference."""

from __future__ import annotations

from pydantic import Field

from citysync.schemas.common import CamelModel


class LocationPreferenceUpdate(CamelModel):
    """City and country typed in by the user.

    Length and blank checks happen in the service so the stored error message
    matches what the app shows next to the form.
    """

    city: str
    country: str


class DetectedLocation(CamelModel):
    """Result of a device reverse geocode; missing parts become placeholders."""

    city: str | None = None
    country: str | None = None


class LocationPreferenceView(CamelModel):
    city: str | None = None
    country: str | None = None
    last_geocoded_session: int | None = Field(
        None, description="Milliseconds since the epoch of the last recorded geocode."
    )
    needs_geocode: bool
    error: str | None = None


__all__ = ["DetectedLocation", "LocationPreferenceUpdate", "LocationPreferenceView"]
