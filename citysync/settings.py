"""Centralized configuration management for the CitySync service."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field, PrivateAttr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables defined in a local .env file before instantiating the
# settings singleton so every consumer importing :mod:`citysync.settings` sees the
# same values regardless of import order.
load_dotenv()

# -- Application-wide constants -------------------------------------------------

DEFAULT_REDIS_URL = "redis://localhost:6379/0"
DEFAULT_STORAGE_NAMESPACE = "citysync"
DEFAULT_SEED_DATA_PATH = Path(__file__).resolve().parent / "data" / "seed.json"
DEFAULT_RECENT_REVIEWS_LIMIT = 10
DEFAULT_PROFILE_COLLECTION = "users"
DEFAULT_API_BASE_URL = "http://localhost:3000"
DEFAULT_LOG_LEVEL = "INFO"


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``.

    Storage, profile and client settings live side by side so the application
    lifespan and the profile client resolve the same values.  Explicit overrides
    are tracked to drive the startup warnings emitted by :meth:`optional_config_warnings`.
    """

    _explicit_redis_url: bool = PrivateAttr(default=False)
    _explicit_firebase_project: bool = PrivateAttr(default=False)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **values: object) -> None:  # noqa: D401 - short override explanation
        """Capture explicit overrides prior to delegating to ``BaseSettings``."""

        normalized_keys = {str(key).lower() for key in values}
        super().__init__(**values)
        self._explicit_redis_url = "redis_url" in normalized_keys
        self._explicit_firebase_project = "firebase_project_id" in normalized_keys
        redis_env = os.getenv("REDIS_URL")
        if redis_env is not None and redis_env.strip():
            self._explicit_redis_url = True
        project_env = os.getenv("FIREBASE_PROJECT_ID")
        if project_env is not None and project_env.strip():
            self._explicit_firebase_project = True

    redis_url: str = Field(
        default=DEFAULT_REDIS_URL,
        alias="REDIS_URL",
        description="Redis connection string backing the persisted key-value store.",
    )
    use_memory_storage: bool = Field(
        default=False,
        alias="USE_MEMORY_STORAGE",
        description=(
            "Keep the key-value store in process memory instead of Redis. Helpful"
            " for local development and test suites."
        ),
    )
    storage_namespace: str = Field(
        default=DEFAULT_STORAGE_NAMESPACE,
        alias="STORAGE_NAMESPACE",
        description="Prefix applied to every persisted slot key.",
    )
    seed_data_path: Path = Field(
        default=DEFAULT_SEED_DATA_PATH,
        alias="SEED_DATA_PATH",
        description="JSON fixture providing the fallback locations and reviews.",
    )
    recent_reviews_limit: int = Field(
        default=DEFAULT_RECENT_REVIEWS_LIMIT,
        alias="RECENT_REVIEWS_LIMIT",
        ge=1,
        description="Number of reviews returned by the recent reviews feed.",
    )
    placeholder_user_id: str = Field(
        default="1",
        alias="PLACEHOLDER_USER_ID",
        description="Author id stamped on reviews created through the local layer.",
    )
    placeholder_user_name: str = Field(
        default="Current User",
        alias="PLACEHOLDER_USER_NAME",
        description="Author display name stamped on locally created reviews.",
    )
    use_memory_profiles: bool = Field(
        default=False,
        alias="USE_MEMORY_PROFILES",
        description="Serve profile documents from memory instead of Firestore.",
    )
    firebase_project_id: str | None = Field(
        default=None,
        alias="FIREBASE_PROJECT_ID",
        description="Firebase project hosting the Firestore profile documents.",
    )
    firebase_credentials_path: Path | None = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS_PATH",
        description=(
            "Service account JSON used to initialise firebase-admin. Application"
            " default credentials are used when unset."
        ),
    )
    profile_collection: str = Field(
        default=DEFAULT_PROFILE_COLLECTION,
        alias="PROFILE_COLLECTION",
        description="Firestore collection holding one document per user id.",
    )
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        alias="API_BASE_URL",
        description="Base URL the profile RPC client talks to.",
    )
    cors_allow_origins_raw: str | None = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of CORS origins. Defaults to every origin.",
    )
    log_level: str = Field(
        default=DEFAULT_LOG_LEVEL,
        alias="LOG_LEVEL",
        description="Root logging level (e.g. INFO, DEBUG, WARNING).",
    )

    @property
    def cors_allow_origins(self) -> list[str]:
        """Return normalised CORS origins, falling back to a wildcard."""

        if not self.cors_allow_origins_raw:
            return ["*"]

        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return [origin for origin in origins if origin] or ["*"]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> list[str]:
        """Return human-readable warnings for unset optional configuration."""

        warnings: list[str] = []

        if (
            not self.use_memory_storage
            and not self._explicit_redis_url
            and self.redis_url == DEFAULT_REDIS_URL
        ):
            warnings.append(
                "REDIS_URL is not set - using the default localhost instance; the"
                " store falls back to process memory when Redis is unreachable"
            )

        if not self.use_memory_profiles and not self._explicit_firebase_project:
            warnings.append(
                "FIREBASE_PROJECT_ID is not set - profile requests rely on"
                " application default credentials"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()


__all__ = [
    "AppSettings",
    "DEFAULT_API_BASE_URL",
    "DEFAULT_LOG_LEVEL",
    "DEFAULT_PROFILE_COLLECTION",
    "DEFAULT_RECENT_REVIEWS_LIMIT",
    "DEFAULT_REDIS_URL",
    "DEFAULT_SEED_DATA_PATH",
    "DEFAULT_STORAGE_NAMESPACE",
    "get_settings",
]
