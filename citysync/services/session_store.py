"""Persisted session for the signed-in user.

The session lives in the ``user`` slot. Sign-in is local: ``login`` and
``register`` synthesise a user record without contacting any identity
provider, and the remote profile document is only consulted through
:meth:`SessionStore.refresh_profile` and :meth:`SessionStore.push_profile`.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from citysync.errors import PersistenceError, ProfileClientError
from citysync.schemas.user import ProfileFields, ProfileUpdate, User
from citysync.services.locations_store import StoreState
from citysync.services.profile_client import ProfileClient
from citysync.services.snapshot import USER_ADAPTER, decode_slot, encode_user
from citysync.storage import USER_SLOT, KeyValueStore
from citysync.utils.ids import Clock, TimestampIdGenerator, utc_now

logger = logging.getLogger(__name__)

LOGIN_USER_ID = "1"
LOGIN_BIO = "Explorer of cities and hidden gems"
REGISTER_BIO = "New to CitySync!"


class SessionStore:
    def __init__(
        self,
        storage: KeyValueStore,
        *,
        clock: Clock = utc_now,
        id_factory: TimestampIdGenerator | None = None,
    ) -> None:
        self._storage = storage
        self._clock = clock
        self._next_id = id_factory or TimestampIdGenerator(clock)
        self._user: User | None = None
        self._state = StoreState.LOADING

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def user(self) -> User | None:
        return self._user

    async def load(self) -> None:
        """Restore the user from storage, discarding anything unusable."""

        try:
            raw = await self._storage.get_item(USER_SLOT)
            result = decode_slot(raw, USER_ADAPTER)
            if result.ok:
                self._user = result.value
            elif result.should_purge:
                logger.warning("Discarding stored user (%s)", result.reason)
                await self._storage.remove_item(USER_SLOT)
        except Exception:  # type: ignore[broad-except]
            logger.exception("Error loading user")
            try:
                await self._storage.remove_item(USER_SLOT)
            except Exception as exc:  # type: ignore[broad-except]
                logger.error("Error clearing user data: %s", exc)
        finally:
            self._state = StoreState.READY

    async def login(self, email: str, password: str) -> bool:
        """Sign in with a locally synthesised user; ``password`` is not checked."""

        user = User(
            id=LOGIN_USER_ID,
            email=email,
            name=email.split("@")[0],
            bio=LOGIN_BIO,
            joined_date=self._clock(),
        )
        return await self._start_session(user, action="Login")

    async def register(self, email: str, password: str, name: str) -> bool:
        user = User(
            id=self._next_id(),
            email=email,
            name=name,
            bio=REGISTER_BIO,
            joined_date=self._clock(),
        )
        return await self._start_session(user, action="Registration")

    async def logout(self) -> None:
        try:
            await self._storage.remove_item(USER_SLOT)
        except Exception as exc:  # type: ignore[broad-except]
            logger.error("Logout error: %s", exc)
            return
        self._user = None

    async def update_profile(self, update: ProfileUpdate) -> User | None:
        """Merge ``update`` into the session user and persist it.

        Does nothing when nobody is signed in. Raises
        :class:`~citysync.errors.PersistenceError` when the write fails, in which
        case the session user is left as it was.
        """

        if self._user is None:
            return None

        updated = self._merge(self._user, update)
        await self._write_user(updated)
        self._user = updated
        return updated

    async def refresh_profile(
        self, client: ProfileClient, user_id: str | None = None
    ) -> User | None:
        """Overlay the remote profile document on the session user.

        With nobody signed in, ``user_id`` selects the profile to fetch and the
        merged result is returned without touching the session. Remote failures
        fall back to the cached user, or to an empty profile for ``user_id``.
        """

        cached = self._user
        target = user_id or (cached.id if cached else None)
        if target is None:
            return None

        is_session_user = cached is not None and cached.id == target
        base = cached if is_session_user else User(id=target)

        try:
            document = await client.get_profile(target)
            remote = ProfileFields.model_validate(document or {})
        except (ProfileClientError, ValidationError) as exc:
            logger.warning("Could not refresh profile for user %s: %s", target, exc)
            return base

        merged = self._merge(base, remote)
        if not is_session_user:
            return merged

        try:
            await self._write_user(merged)
        except PersistenceError as exc:
            logger.warning("Keeping cached profile for user %s: %s", target, exc)
            return cached
        self._user = merged
        return merged

    async def push_profile(self, client: ProfileClient, update: ProfileUpdate) -> bool:
        """Apply ``update`` locally, then send it to the remote profile store."""

        user = await self.update_profile(update)
        if user is None:
            return False

        try:
            result = await client.update_profile(user.id, update)
        except ProfileClientError as exc:
            logger.warning("Remote profile update failed for user %s: %s", user.id, exc)
            return False
        return result.success

    @staticmethod
    def _merge(user: User, fields: ProfileFields) -> User:
        changes: dict[str, Any] = fields.model_dump(exclude_none=True)
        return User.model_validate({**user.model_dump(), **changes, "id": user.id})

    async def _start_session(self, user: User, *, action: str) -> bool:
        try:
            await self._write_user(user)
        except PersistenceError as exc:
            logger.error("%s error: %s", action, exc)
            return False
        self._user = user
        return True

    async def _write_user(self, user: User) -> None:
        try:
            await self._storage.set_item(USER_SLOT, encode_user(user))
        except Exception as exc:  # type: ignore[broad-except]
            raise PersistenceError(f"Failed to persist user: {exc}") from exc


__all__ = ["LOGIN_BIO", "LOGIN_USER_ID", "REGISTER_BIO", "SessionStore"]
