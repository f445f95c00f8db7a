"""Remote profile documents keyed by user id.

Responsibilities are split the same way as the rest of the service layer:

* :class:`ProfileRepository` implementations talk to a document store.
  :class:`FirestoreProfileRepository` uses the ``firebase-admin`` async
  Firestore client; :class:`MemoryProfileRepository` keeps documents in a
  dictionary for development and tests.
* :class:`ProfileService` applies the upsert rules (drop unset fields, stamp
  ``createdAt`` / ``updatedAt``) and converts store failures into
  :class:`~citysync.errors.ProfileStoreError`.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from typing import Any, Protocol

import firebase_admin
from firebase_admin import credentials, firestore_async

from citysync.errors import ProfileStoreError
from citysync.schemas.user import ProfileUpdate, ProfileUpdateResult
from citysync.settings import DEFAULT_PROFILE_COLLECTION, AppSettings, get_settings
from citysync.utils.ids import Clock, utc_now

logger = logging.getLogger(__name__)

FIREBASE_APP_NAME = "citysync"
UPDATE_SUCCESS_MESSAGE = "Profile updated successfully"


class ProfileRepository(Protocol):
    """Minimal document-store surface used by :class:`ProfileService`."""

    async def fetch(self, user_id: str) -> dict[str, Any] | None: ...

    async def create(self, user_id: str, data: Mapping[str, Any]) -> None: ...

    async def merge(self, user_id: str, data: Mapping[str, Any]) -> None: ...


class FirestoreProfileRepository:
    """Profile documents stored at ``{collection}/{user_id}`` in Firestore."""

    def __init__(self, client: Any, *, collection: str = DEFAULT_PROFILE_COLLECTION) -> None:
        self._collection = client.collection(collection)

    async def fetch(self, user_id: str) -> dict[str, Any] | None:
        snapshot = await self._collection.document(user_id).get()
        if not snapshot.exists:
            return None
        return snapshot.to_dict()

    async def create(self, user_id: str, data: Mapping[str, Any]) -> None:
        await self._collection.document(user_id).set(dict(data))

    async def merge(self, user_id: str, data: Mapping[str, Any]) -> None:
        await self._collection.document(user_id).update(dict(data))


class MemoryProfileRepository:
    def __init__(self, documents: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._documents: dict[str, dict[str, Any]] = {
            user_id: dict(document) for user_id, document in (documents or {}).items()
        }

    async def fetch(self, user_id: str) -> dict[str, Any] | None:
        document = self._documents.get(user_id)
        return copy.deepcopy(document) if document is not None else None

    async def create(self, user_id: str, data: Mapping[str, Any]) -> None:
        self._documents[user_id] = copy.deepcopy(dict(data))

    async def merge(self, user_id: str, data: Mapping[str, Any]) -> None:
        if user_id not in self._documents:
            raise KeyError(f"No profile document for user {user_id}")
        self._documents[user_id].update(copy.deepcopy(dict(data)))


class ProfileService:
    """Read and upsert profile documents."""

    def __init__(self, repository: ProfileRepository, *, clock: Clock = utc_now) -> None:
        self._repository = repository
        self._clock = clock

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        try:
            document = await self._repository.fetch(user_id)
        except Exception as exc:  # type: ignore[broad-except]
            logger.error("Error getting profile for user %s: %s", user_id, exc)
            raise ProfileStoreError(f"Failed to get profile: {exc}") from exc

        if document is None:
            logger.debug("No profile document found for user %s", user_id)
        return document

    async def update_profile(
        self, user_id: str, update: ProfileUpdate
    ) -> ProfileUpdateResult:
        """Merge ``update`` into the user's document, creating it when missing."""

        fields = update.changes()
        now = self._clock().isoformat()

        try:
            existing = await self._repository.fetch(user_id)
            if existing is not None:
                await self._repository.merge(user_id, {**fields, "updatedAt": now})
            else:
                await self._repository.create(
                    user_id, {**fields, "createdAt": now, "updatedAt": now}
                )
        except Exception as exc:  # type: ignore[broad-except]
            logger.error("Error updating profile for user %s: %s", user_id, exc)
            raise ProfileStoreError(f"Failed to update profile: {exc}") from exc

        logger.info(
            "Profile %s for user %s",
            "updated" if existing is not None else "created",
            user_id,
        )
        return ProfileUpdateResult(success=True, message=UPDATE_SUCCESS_MESSAGE)


def initialize_firebase_app(settings: AppSettings) -> firebase_admin.App:
    """Return the CitySync Firebase app, initialising it on first use."""

    try:
        return firebase_admin.get_app(FIREBASE_APP_NAME)
    except ValueError:
        pass

    if settings.firebase_credentials_path is not None:
        credential = credentials.Certificate(str(settings.firebase_credentials_path))
    else:
        credential = credentials.ApplicationDefault()

    options = (
        {"projectId": settings.firebase_project_id}
        if settings.firebase_project_id
        else None
    )
    logger.info("Initialising Firebase app for project %s", settings.firebase_project_id)
    return firebase_admin.initialize_app(credential, options, name=FIREBASE_APP_NAME)


def build_profile_service(settings: AppSettings | None = None) -> ProfileService:
    """Create the profile service for the configured backend."""

    active = settings or get_settings()
    if active.use_memory_profiles:
        logger.info("Using in-memory profile documents (USE_MEMORY_PROFILES enabled)")
        return ProfileService(MemoryProfileRepository())

    app = initialize_firebase_app(active)
    client = firestore_async.client(app=app)
    return ProfileService(
        FirestoreProfileRepository(client, collection=active.profile_collection)
    )


__all__ = [
    "FirestoreProfileRepository",
    "MemoryProfileRepository",
    "ProfileRepository",
    "ProfileService",
    "UPDATE_SUCCESS_MESSAGE",
    "build_profile_service",
    "initialize_firebase_app",
]
