"""Encoding and strict decoding of persisted snapshot slots.

Stored values go through two gates before anything in memory trusts them:

1. a cheap sentinel check that recognises placeholder strings left behind by
   earlier clients (``"undefined"``, ``"null"``, blank values and stringified
   objects such as ``"[object Object]"``);
2. schema validation of the JSON payload through a pydantic ``TypeAdapter``.

Both gates report through :class:`SlotResult` instead of raising so that the
stores can decide how to recover (purge and reseed, or drop the slot).
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

from pydantic import TypeAdapter, ValidationError

from citysync.schemas.location import Location
from citysync.schemas.review import Review
from citysync.schemas.user import User

T = TypeVar("T")

CORRUPTED_LITERALS = frozenset({"undefined", "null"})
CORRUPTED_PREFIXES = ("[object", "object Object")
PREVIEW_LENGTH = 50

LOCATIONS_ADAPTER: TypeAdapter[list[Location]] = TypeAdapter(list[Location])
REVIEWS_ADAPTER: TypeAdapter[list[Review]] = TypeAdapter(list[Review])
USER_ADAPTER: TypeAdapter[User] = TypeAdapter(User)


class SlotStatus(str, Enum):
    """Outcome of inspecting a single persisted slot."""

    VALID = "valid"
    ABSENT = "absent"
    CORRUPTED = "corrupted"
    INVALID = "invalid"


@dataclass(frozen=True)
class SlotResult(Generic[T]):
    """Typed result of decoding a slot: a value, or the reason it was rejected."""

    status: SlotStatus
    value: T | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.status is SlotStatus.VALID

    @property
    def should_purge(self) -> bool:
        """Whether the stored value is present but unusable."""

        return self.status in (SlotStatus.CORRUPTED, SlotStatus.INVALID)


def preview(raw: str) -> str:
    """Shorten a stored value for log output."""

    return raw[:PREVIEW_LENGTH]


def is_corrupted_sentinel(raw: str) -> bool:
    """Return ``True`` for placeholder strings that can never hold real data."""

    stripped = raw.strip()
    if not stripped:
        return True
    if raw in CORRUPTED_LITERALS:
        return True
    return raw.startswith(CORRUPTED_PREFIXES)


def decode_slot(raw: str | None, adapter: TypeAdapter[T]) -> SlotResult[T]:
    """Classify and validate ``raw`` against ``adapter``."""

    if raw is None:
        return SlotResult(SlotStatus.ABSENT, reason="nothing stored")
    if is_corrupted_sentinel(raw):
        return SlotResult(SlotStatus.CORRUPTED, reason=f"sentinel value {preview(raw)!r}")
    try:
        value = adapter.validate_json(raw)
    except ValidationError as exc:
        return SlotResult(
            SlotStatus.INVALID,
            reason=f"{exc.error_count()} validation error(s): {exc.errors()[0]['msg']}",
        )
    return SlotResult(SlotStatus.VALID, value=value)


def decode_text_slot(raw: str | None) -> SlotResult[str]:
    """Classify a slot that stores a bare string rather than JSON."""

    if raw is None:
        return SlotResult(SlotStatus.ABSENT, reason="nothing stored")
    if is_corrupted_sentinel(raw):
        return SlotResult(SlotStatus.CORRUPTED, reason=f"sentinel value {preview(raw)!r}")
    return SlotResult(SlotStatus.VALID, value=raw)


def decode_timestamp_slot(raw: str | None) -> SlotResult[int]:
    """Classify a slot storing epoch milliseconds as a decimal string."""

    text = decode_text_slot(raw)
    if not text.ok:
        return SlotResult(text.status, reason=text.reason)
    try:
        millis = int(text.value.strip())  # type: ignore[union-attr]
    except ValueError:
        return SlotResult(SlotStatus.INVALID, reason=f"not an integer: {preview(raw or '')!r}")
    if millis <= 0:
        return SlotResult(SlotStatus.INVALID, reason=f"non-positive timestamp {millis}")
    return SlotResult(SlotStatus.VALID, value=millis)


def encode_locations(locations: Sequence[Location]) -> str:
    return LOCATIONS_ADAPTER.dump_json(
        list(locations), by_alias=True, exclude_none=True
    ).decode("utf-8")


def encode_reviews(reviews: Sequence[Review]) -> str:
    return REVIEWS_ADAPTER.dump_json(
        list(reviews), by_alias=True, exclude_none=True
    ).decode("utf-8")


def encode_user(user: User) -> str:
    return USER_ADAPTER.dump_json(user, by_alias=True, exclude_none=True).decode("utf-8")


__all__ = [
    "CORRUPTED_LITERALS",
    "CORRUPTED_PREFIXES",
    "LOCATIONS_ADAPTER",
    "REVIEWS_ADAPTER",
    "SlotResult",
    "SlotStatus",
    "USER_ADAPTER",
    "decode_slot",
    "decode_text_slot",
    "decode_timestamp_slot",
    "encode_locations",
    "encode_reviews",
    "encode_user",
    "is_corrupted_sentinel",
    "preview",
]
