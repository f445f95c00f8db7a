"""Pytest configuration helpers for the CitySync project.

The ``pytest`` plugin system automatically imports ``tests.conftest``. We use
that behavior to ensure the repository root is present on ``sys.path`` before
any test modules import application code, and to share the fixtures every
store test needs.
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from tests import _ensure_repo_on_path

_ensure_repo_on_path()

from citysync.seed import SeedData, load_seed  # noqa: E402
from citysync.storage import MemoryStorage  # noqa: E402
from tests.citysync.support.doubles import FakeClock  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Hook executed by pytest prior to running any tests."""

    _ensure_repo_on_path()


@pytest.fixture
def seed() -> SeedData:
    """The bundled seed data shipped with the package."""
    return load_seed()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def clock() -> FakeClock:
    """A controllable clock starting at 2025-01-01 12:00 UTC."""
    return FakeClock(datetime(2025, 1, 1, 12, 0, 0, tzinfo=UTC))
