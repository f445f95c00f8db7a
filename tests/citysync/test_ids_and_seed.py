from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from citysync.seed import load_seed, parse_seed
from citysync.utils.ids import TimestampIdGenerator, epoch_millis
from tests.citysync.support.doubles import FakeClock


def test_ids_follow_the_clock() -> None:
    clock = FakeClock(datetime(2025, 1, 1, tzinfo=UTC))
    next_id = TimestampIdGenerator(clock)

    first = next_id()
    clock.advance(seconds=1)
    second = next_id()

    assert first == str(epoch_millis(datetime(2025, 1, 1, tzinfo=UTC)))
    assert int(second) - int(first) == 1000


def test_ids_stay_increasing_when_clock_stalls_or_rewinds() -> None:
    clock = FakeClock(datetime(2025, 1, 1, tzinfo=UTC))
    next_id = TimestampIdGenerator(clock)

    first = int(next_id())
    second = int(next_id())
    clock.now -= timedelta(minutes=5)
    third = int(next_id())

    assert first < second < third


def test_bundled_seed_is_valid() -> None:
    seed = load_seed()

    assert len(seed.locations) == 6
    assert len(seed.reviews) == 11
    assert len({location.id for location in seed.locations}) == 6
    assert all(review.created_at.tzinfo is not None for review in seed.reviews)


def test_parse_seed_rejects_malformed_fixture() -> None:
    with pytest.raises(ValidationError):
        parse_seed({"locations": [{"id": "1"}], "reviews": []})
