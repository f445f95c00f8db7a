"""Unit tests covering the typed application settings implementation."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from citysync.main import validate_environment
from citysync.settings import (
    DEFAULT_RECENT_REVIEWS_LIMIT,
    DEFAULT_REDIS_URL,
    DEFAULT_SEED_DATA_PATH,
    AppSettings,
)

_ENV_VARS = (
    "REDIS_URL",
    "USE_MEMORY_STORAGE",
    "USE_MEMORY_PROFILES",
    "FIREBASE_PROJECT_ID",
    "CORS_ALLOW_ORIGINS",
    "LOG_LEVEL",
    "RECENT_REVIEWS_LIMIT",
    "STORAGE_NAMESPACE",
    "SEED_DATA_PATH",
)


@pytest.fixture(autouse=True)
def _clean_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    configured = AppSettings()

    assert configured.redis_url == DEFAULT_REDIS_URL
    assert configured.storage_namespace == "citysync"
    assert configured.seed_data_path == DEFAULT_SEED_DATA_PATH
    assert configured.recent_reviews_limit == DEFAULT_RECENT_REVIEWS_LIMIT
    assert configured.cors_allow_origins == ["*"]
    assert configured.log_level_numeric == logging.INFO


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("USE_MEMORY_STORAGE", "true")
    monkeypatch.setenv("RECENT_REVIEWS_LIMIT", "3")
    monkeypatch.setenv("SEED_DATA_PATH", "/tmp/seed.json")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    configured = AppSettings()

    assert configured.use_memory_storage is True
    assert configured.recent_reviews_limit == 3
    assert configured.seed_data_path == Path("/tmp/seed.json")
    assert configured.log_level_numeric == logging.DEBUG


def test_cors_origins_are_normalised(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CORS_ALLOW_ORIGINS", "https://citysync.app/, http://localhost:8081,,")

    configured = AppSettings()

    assert configured.cors_allow_origins == ["https://citysync.app", "http://localhost:8081"]


def test_unknown_log_level_falls_back_to_info() -> None:
    assert AppSettings(log_level="chatty").log_level_numeric == logging.INFO


def test_optional_config_warnings_default() -> None:
    """Default configuration should warn when optional settings remain unset."""

    warnings = AppSettings().optional_config_warnings()

    assert any("REDIS_URL" in warning for warning in warnings)
    assert any("FIREBASE_PROJECT_ID" in warning for warning in warnings)


def test_optional_config_warnings_clear_when_values_provided(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("REDIS_URL", DEFAULT_REDIS_URL)
    monkeypatch.setenv("FIREBASE_PROJECT_ID", "citysync-dev")

    assert AppSettings().optional_config_warnings() == []


def test_memory_backends_suppress_warnings() -> None:
    configured = AppSettings(use_memory_storage=True, use_memory_profiles=True)

    assert configured.optional_config_warnings() == []


def test_validate_environment_logging(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING):
        validate_environment(AppSettings())

    assert "REDIS_URL is not set" in caplog.text
    assert "FIREBASE_PROJECT_ID is not set" in caplog.text


def test_validate_environment_silent_when_overrides_present(
    caplog: pytest.LogCaptureFixture,
) -> None:
    candidate = AppSettings(redis_url="redis://cache:6379/1", firebase_project_id="citysync")

    with caplog.at_level(logging.WARNING):
        validate_environment(candidate)

    assert "Environment Configuration Warnings" not in caplog.text
