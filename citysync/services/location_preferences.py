"""Persisted city/country preference and reverse-geocode throttling."""

from __future__ import annotations

import logging
from datetime import timedelta

from citysync.services.locations_store import StoreState
from citysync.services.snapshot import decode_text_slot, decode_timestamp_slot
from citysync.storage import (
    LAST_GEOCODED_SLOT,
    USER_CITY_SLOT,
    USER_COUNTRY_SLOT,
    KeyValueStore,
)
from citysync.utils.ids import Clock, epoch_millis, utc_now

logger = logging.getLogger(__name__)

GEOCODE_INTERVAL = timedelta(hours=1)
MAX_PLACE_NAME_LENGTH = 100
UNKNOWN_CITY = "Unknown City"
UNKNOWN_COUNTRY = "Unknown Country"

LOAD_FAILED_MESSAGE = "Failed to load saved location"
EMPTY_LOCATION_MESSAGE = "City and country cannot be empty"
LOCATION_TOO_LONG_MESSAGE = "City and country names are too long (max 100 characters)"
SAVE_FAILED_MESSAGE = "Failed to save location. Please try again."


class LocationPreferences:
    """The user's chosen city and country plus the last geocode timestamp.

    Problems are reported through :attr:`error` rather than raised so callers
    can surface them next to the form that produced them.
    """

    def __init__(self, storage: KeyValueStore, *, clock: Clock = utc_now) -> None:
        self._storage = storage
        self._clock = clock
        self.city: str | None = None
        self.country: str | None = None
        self.last_geocoded_ms: int | None = None
        self.error: str | None = None
        self._state = StoreState.LOADING

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def needs_geocode(self) -> bool:
        """``True`` unless a geocode was recorded within :data:`GEOCODE_INTERVAL`."""

        if self.last_geocoded_ms is None:
            return True
        elapsed = epoch_millis(self._clock()) - self.last_geocoded_ms
        return elapsed > GEOCODE_INTERVAL.total_seconds() * 1000

    async def load(self) -> None:
        try:
            city = decode_text_slot(await self._storage.get_item(USER_CITY_SLOT))
            country = decode_text_slot(await self._storage.get_item(USER_COUNTRY_SLOT))
            geocoded = decode_timestamp_slot(
                await self._storage.get_item(LAST_GEOCODED_SLOT)
            )

            for slot, result in (
                (USER_CITY_SLOT, city),
                (USER_COUNTRY_SLOT, country),
                (LAST_GEOCODED_SLOT, geocoded),
            ):
                if result.should_purge:
                    logger.warning("Discarding stored %s (%s)", slot, result.reason)
                    await self._storage.remove_item(slot)

            self.city = city.value
            self.country = country.value
            self.last_geocoded_ms = geocoded.value
        except Exception:  # type: ignore[broad-except]
            logger.exception("Error loading stored location")
            for slot in (USER_CITY_SLOT, USER_COUNTRY_SLOT, LAST_GEOCODED_SLOT):
                try:
                    await self._storage.remove_item(slot)
                except Exception as exc:  # type: ignore[broad-except]
                    logger.error("Error clearing %s: %s", slot, exc)
            self.error = LOAD_FAILED_MESSAGE
        finally:
            self._state = StoreState.READY

    async def update_user_location(self, city: str, country: str) -> bool:
        """Validate and save a manually entered city and country."""

        if not city.strip() or not country.strip():
            self.error = EMPTY_LOCATION_MESSAGE
            return False

        if len(city) > MAX_PLACE_NAME_LENGTH or len(country) > MAX_PLACE_NAME_LENGTH:
            self.error = LOCATION_TOO_LONG_MESSAGE
            return False

        city, country = city.strip(), country.strip()
        if not await self._save({USER_CITY_SLOT: city, USER_COUNTRY_SLOT: country}):
            return False

        self.city, self.country = city, country
        self.error = None
        logger.info("Location updated: %s, %s", city, country)
        return True

    async def record_detected_location(
        self, city: str | None, country: str | None
    ) -> tuple[str, str] | None:
        """Store the result of a device reverse geocode and stamp the session."""

        city = (city or "").strip() or UNKNOWN_CITY
        country = (country or "").strip() or UNKNOWN_COUNTRY
        stamp = epoch_millis(self._clock())

        saved = await self._save(
            {
                USER_CITY_SLOT: city,
                USER_COUNTRY_SLOT: country,
                LAST_GEOCODED_SLOT: str(stamp),
            }
        )
        if not saved:
            return None

        self.city, self.country = city, country
        self.last_geocoded_ms = stamp
        self.error = None
        logger.info("Location detected: %s, %s", city, country)
        return city, country

    def clear_error(self) -> None:
        self.error = None

    async def _save(self, items: dict[str, str]) -> bool:
        try:
            await self._storage.set_items(items)
        except Exception as exc:  # type: ignore[broad-except]
            logger.error("Error updating user location: %s", exc)
            self.error = SAVE_FAILED_MESSAGE
            return False
        return True


__all__ = [
    "EMPTY_LOCATION_MESSAGE",
    "GEOCODE_INTERVAL",
    "LOAD_FAILED_MESSAGE",
    "LOCATION_TOO_LONG_MESSAGE",
    "LocationPreferences",
    "SAVE_FAILED_MESSAGE",
    "UNKNOWN_CITY",
    "UNKNOWN_COUNTRY",
]
