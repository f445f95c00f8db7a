"""Test doubles shared by the storage, store and API tests."""

from __future__ import annotations

import fnmatch
from collections.abc import AsyncIterator, Mapping
from datetime import datetime, timedelta
from typing import Any

from citysync.errors import ProfileClientError, StorageUnavailableError
from citysync.schemas.user import ProfileUpdate, ProfileUpdateResult
from citysync.storage import MemoryStorage


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


class FlakyStorage(MemoryStorage):
    """:class:`MemoryStorage` that can be told to fail reads, writes or deletes."""

    def __init__(self, initial: Mapping[str, str] | None = None) -> None:
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False
        self.fail_removes = False
        self.removed: list[str] = []
        self.writes: list[dict[str, str]] = []

    async def get_item(self, key: str) -> str | None:
        if self.fail_reads:
            raise StorageUnavailableError(f"read failed for {key}")
        return await super().get_item(key)

    async def set_item(self, key: str, value: str) -> None:
        await self.set_items({key: value})

    async def set_items(self, items: Mapping[str, str]) -> None:
        if self.fail_writes:
            raise StorageUnavailableError("write failed")
        self.writes.append(dict(items))
        await super().set_items(items)

    async def remove_item(self, key: str) -> None:
        if self.fail_removes:
            raise StorageUnavailableError(f"remove failed for {key}")
        self.removed.append(key)
        await super().remove_item(key)


class InMemoryRedis:
    """Lightweight async Redis double covering the calls made by ``RedisStorage``."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}
        self.mset_calls: list[dict[str, str]] = []

    async def ping(self) -> bool:  # pragma: no cover - mirror redis API
        return True

    async def get(self, key: str) -> str | None:
        return self._store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._store[key] = value

    async def mset(self, mapping: Mapping[str, str]) -> bool:
        self.mset_calls.append(dict(mapping))
        self._store.update(mapping)
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._store.pop(key, None) is not None:
                removed += 1
        return removed

    async def scan_iter(self, match: str) -> AsyncIterator[str]:
        for key in list(self._store.keys()):
            if fnmatch.fnmatch(key, match):
                yield key

    async def aclose(self) -> None:  # pragma: no cover - compatibility shim
        self._store.clear()


class StubProfileClient:
    """Stand-in for :class:`citysync.services.profile_client.ProfileClient`."""

    def __init__(
        self,
        document: dict[str, Any] | None = None,
        *,
        fail: bool = False,
    ) -> None:
        self.document = document
        self.fail = fail
        self.fetched: list[str] = []
        self.updates: list[tuple[str, dict[str, Any]]] = []

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        self.fetched.append(user_id)
        if self.fail:
            raise ProfileClientError("profile service unreachable", status_code=502)
        return self.document

    async def update_profile(
        self, user_id: str, update: ProfileUpdate
    ) -> ProfileUpdateResult:
        if self.fail:
            raise ProfileClientError("profile service unreachable", status_code=502)
        self.updates.append((user_id, update.changes()))
        return ProfileUpdateResult(success=True, message="Profile updated successfully")
