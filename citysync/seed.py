"""Loader for the bundled seed data used when no valid snapshot is stored."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from citysync.schemas.location import Location
from citysync.schemas.review import Review
from citysync.services.snapshot import LOCATIONS_ADAPTER, REVIEWS_ADAPTER
from citysync.settings import DEFAULT_SEED_DATA_PATH

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeedData:
    """Fallback collections, stored as tuples so they can be shared safely."""

    locations: tuple[Location, ...]
    reviews: tuple[Review, ...]


def parse_seed(payload: dict) -> SeedData:
    """Validate a decoded seed document.

    Raises ``pydantic.ValidationError`` when the fixture does not match the
    entity schemas; a broken fixture is a packaging bug, not a runtime state.
    """

    locations = LOCATIONS_ADAPTER.validate_python(payload.get("locations", []))
    reviews = REVIEWS_ADAPTER.validate_python(payload.get("reviews", []))
    return SeedData(locations=tuple(locations), reviews=tuple(reviews))


@lru_cache(maxsize=4)
def load_seed(path: Path = DEFAULT_SEED_DATA_PATH) -> SeedData:
    """Read and validate the seed fixture at ``path`` (cached per path)."""

    with open(path, encoding="utf-8") as handle:
        payload = json.load(handle)
    seed = parse_seed(payload)
    logger.debug(
        "Loaded seed data from %s (%d locations, %d reviews)",
        path,
        len(seed.locations),
        len(seed.reviews),
    )
    return seed


__all__ = ["SeedData", "load_seed", "parse_seed"]
