"""Local cache and sync layer for locations and their reviews.

:class:`LocationsStore` owns the in-memory Location and Review collections for
the lifetime of the process:

* ``load`` reads the ``locations`` and ``reviews`` slots, discards anything that
  fails validation and falls back to the bundled seed data. It never raises.
* the query helpers (``search_locations``, ``get_location_by_id``,
  ``get_location_reviews``, ``get_recent_reviews``) read the installed tuples
  without locking.
* the mutations (``add_review``, ``add_location``) compute the next
  collections, write them to the key-value store in a single multi-key write
  and only then install them in memory, so memory and storage never diverge.
  A failed write raises :class:`~citysync.errors.PersistenceError`.

Aggregate fields on a location are recomputed from the full review collection
whenever a review for it is added.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Mapping, Sequence
from enum import Enum
from typing import TypeVar

from pydantic import TypeAdapter

from citysync.errors import PersistenceError
from citysync.schemas.location import Location, LocationCreate
from citysync.schemas.review import Review
from citysync.seed import SeedData
from citysync.services.snapshot import (
    LOCATIONS_ADAPTER,
    REVIEWS_ADAPTER,
    decode_slot,
    encode_locations,
    encode_reviews,
)
from citysync.settings import DEFAULT_RECENT_REVIEWS_LIMIT
from citysync.storage import LOCATIONS_SLOT, REVIEWS_SLOT, KeyValueStore
from citysync.utils.ids import Clock, TimestampIdGenerator, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")

PLACEHOLDER_USER_ID = "1"
PLACEHOLDER_USER_NAME = "Current User"


class StoreState(str, Enum):
    """Lifecycle of a store: ``loading`` until the first load completes."""

    LOADING = "loading"
    READY = "ready"


def aggregate_rating(reviews: Iterable[Review], location_id: str) -> tuple[float, int]:
    """Return ``(mean rating, count)`` of the reviews that target ``location_id``."""

    ratings = [review.rating for review in reviews if review.location_id == location_id]
    if not ratings:
        return 0.0, 0
    return sum(ratings) / len(ratings), len(ratings)


class LocationsStore:
    """In-memory owner of the Location and Review collections."""

    def __init__(
        self,
        storage: KeyValueStore,
        *,
        seed: SeedData,
        clock: Clock = utc_now,
        id_factory: TimestampIdGenerator | None = None,
        recent_limit: int = DEFAULT_RECENT_REVIEWS_LIMIT,
        author_id: str = PLACEHOLDER_USER_ID,
        author_name: str = PLACEHOLDER_USER_NAME,
    ) -> None:
        self._storage = storage
        self._seed = seed
        self._clock = clock
        self._next_id = id_factory or TimestampIdGenerator(clock)
        self._recent_limit = recent_limit
        self._author_id = author_id
        self._author_name = author_name
        self._locations: tuple[Location, ...] = ()
        self._reviews: tuple[Review, ...] = ()
        self._state = StoreState.LOADING
        self._write_lock = asyncio.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is StoreState.READY

    @property
    def locations(self) -> tuple[Location, ...]:
        return self._locations

    @property
    def reviews(self) -> tuple[Review, ...]:
        return self._reviews

    async def load(self) -> None:
        """Populate the collections from storage, falling back to seed data."""

        try:
            locations = await self._load_slot(
                LOCATIONS_SLOT, LOCATIONS_ADAPTER, self._seed.locations
            )
            reviews = await self._load_slot(
                REVIEWS_SLOT, REVIEWS_ADAPTER, self._seed.reviews
            )
        except Exception:  # type: ignore[broad-except]
            logger.exception("Error loading locations data; falling back to seed data")
            await self._purge_quietly(LOCATIONS_SLOT, REVIEWS_SLOT)
            locations, reviews = self._seed.locations, self._seed.reviews

        self._locations = tuple(locations)
        self._reviews = tuple(reviews)
        self._state = StoreState.READY
        logger.info(
            "Locations store ready with %d locations and %d reviews",
            len(self._locations),
            len(self._reviews),
        )

    async def _load_slot(
        self, slot: str, adapter: TypeAdapter[list[T]], fallback: Sequence[T]
    ) -> tuple[T, ...]:
        raw = await self._storage.get_item(slot)
        result = decode_slot(raw, adapter)
        if result.ok:
            return tuple(result.value or ())
        if result.should_purge:
            logger.warning(
                "Discarding stored %s (%s); using seed data", slot, result.reason
            )
            await self._storage.remove_item(slot)
        return tuple(fallback)

    async def _purge_quietly(self, *slots: str) -> None:
        for slot in slots:
            try:
                await self._storage.remove_item(slot)
            except Exception as exc:  # type: ignore[broad-except]
                logger.error("Error clearing stored %s: %s", slot, exc)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def search_locations(self, query: str) -> tuple[Location, ...]:
        """Case-insensitive substring match over name, address and category."""

        if not query.strip():
            return self._locations

        needle = query.casefold()
        return tuple(
            location
            for location in self._locations
            if needle in location.name.casefold()
            or needle in location.address.casefold()
            or needle in location.category.casefold()
        )

    def get_location_by_id(self, location_id: str) -> Location | None:
        return next(
            (location for location in self._locations if location.id == location_id),
            None,
        )

    def get_location_reviews(self, location_id: str) -> tuple[Review, ...]:
        return tuple(
            review for review in self._reviews if review.location_id == location_id
        )

    def get_recent_reviews(self, limit: int | None = None) -> tuple[Review, ...]:
        """Return the newest reviews across all locations.

        Reviews are ordered by ``created_at`` descending; equal timestamps keep
        collection order, where earlier entries are the more recently added.
        A non-positive ``limit`` yields an empty tuple.
        """

        count = self._recent_limit if limit is None else max(limit, 0)
        ordered = sorted(
            enumerate(self._reviews),
            key=lambda item: (-item[1].created_at.timestamp(), item[0]),
        )
        return tuple(review for _, review in ordered[:count])

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------
    async def add_review(
        self,
        location_id: str,
        rating: int,
        text: str,
        images: Sequence[str] | None = None,
    ) -> Review:
        """Record a review and refresh the target location's aggregate.

        The rating range is not checked here; callers validate it through
        :class:`~citysync.schemas.review.ReviewCreate`.
        """

        cleaned = text.strip()
        if not cleaned:
            raise ValueError("Review text must not be blank")

        async with self._write_lock:
            review = Review(
                id=self._next_id(),
                location_id=location_id,
                user_id=self._author_id,
                user_name=self._author_name,
                rating=rating,
                text=cleaned,
                images=list(images) if images else None,
                created_at=self._clock(),
            )
            reviews = (review, *self._reviews)
            locations = self._with_aggregate(self._locations, reviews, location_id)

            await self._persist(
                {
                    REVIEWS_SLOT: encode_reviews(reviews),
                    LOCATIONS_SLOT: encode_locations(locations),
                }
            )
            self._reviews = reviews
            self._locations = locations

        logger.info("Added review %s for location %s", review.id, location_id)
        return review

    async def add_location(self, payload: LocationCreate) -> Location:
        """Append a new location with an empty aggregate."""

        async with self._write_lock:
            location = Location(
                id=self._next_id(),
                **payload.model_dump(),
                average_rating=0.0,
                total_reviews=0,
            )
            locations = (*self._locations, location)

            await self._persist({LOCATIONS_SLOT: encode_locations(locations)})
            self._locations = locations

        logger.info("Added location %s (%s)", location.id, location.name)
        return location

    @staticmethod
    def _with_aggregate(
        locations: tuple[Location, ...],
        reviews: Sequence[Review],
        location_id: str,
    ) -> tuple[Location, ...]:
        average, total = aggregate_rating(reviews, location_id)
        if total == 0:
            return locations
        return tuple(
            location.model_copy(
                update={"average_rating": average, "total_reviews": total}
            )
            if location.id == location_id
            else location
            for location in locations
        )

    async def _persist(self, items: Mapping[str, str]) -> None:
        slots = ", ".join(sorted(items))
        try:
            await self._storage.set_items(items)
        except Exception as exc:  # type: ignore[broad-except]
            logger.error("Failed to persist %s: %s", slots, exc)
            raise PersistenceError(f"Failed to persist {slots}: {exc}") from exc


__all__ = [
    "LocationsStore",
    "PLACEHOLDER_USER_ID",
    "PLACEHOLDER_USER_NAME",
    "StoreState",
    "aggregate_rating",
]
