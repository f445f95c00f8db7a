"""Tests for the persisted user session."""

from __future__ import annotations

import json

import httpx
import pytest

from citysync.errors import PersistenceError
from citysync.schemas.user import ProfileUpdate, User
from citysync.services.locations_store import StoreState
from citysync.services.profile_client import ProfileClient
from citysync.services.session_store import LOGIN_BIO, REGISTER_BIO, SessionStore
from citysync.services.snapshot import encode_user
from citysync.storage import USER_SLOT, MemoryStorage
from tests.citysync.support.doubles import FakeClock, FlakyStorage, StubProfileClient


async def _signed_in(storage: MemoryStorage, clock: FakeClock) -> SessionStore:
    session = SessionStore(storage, clock=clock)
    await session.load()
    assert await session.login("ada@example.com", "secret")
    return session


@pytest.mark.asyncio
async def test_load_without_stored_user(storage: MemoryStorage, clock: FakeClock) -> None:
    session = SessionStore(storage, clock=clock)
    assert session.state is StoreState.LOADING

    await session.load()

    assert session.user is None
    assert session.state is StoreState.READY


@pytest.mark.asyncio
async def test_load_restores_valid_user(clock: FakeClock) -> None:
    user = User(id="42", email="sam@example.com", name="Sam")
    storage = MemoryStorage({USER_SLOT: encode_user(user)})
    session = SessionStore(storage, clock=clock)

    await session.load()

    assert session.user == user


@pytest.mark.parametrize(
    "raw",
    ["undefined", "null", "[object Object]", "{not json", '{"email": "x@y.z"}', '{"id": ""}', "[1, 2]"],
)
@pytest.mark.asyncio
async def test_load_purges_unusable_user(raw: str, clock: FakeClock) -> None:
    storage = FlakyStorage({USER_SLOT: raw})
    session = SessionStore(storage, clock=clock)

    await session.load()

    assert session.user is None
    assert storage.removed == [USER_SLOT]


@pytest.mark.asyncio
async def test_load_swallows_storage_failures(clock: FakeClock) -> None:
    storage = FlakyStorage()
    storage.fail_reads = True
    storage.fail_removes = True
    session = SessionStore(storage, clock=clock)

    await session.load()

    assert session.user is None
    assert session.state is StoreState.READY


@pytest.mark.asyncio
async def test_login_synthesises_and_persists_user(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)

    assert session.user is not None
    assert session.user.id == "1"
    assert session.user.name == "ada"
    assert session.user.bio == LOGIN_BIO
    assert session.user.joined_date == clock.now
    stored = json.loads(await storage.get_item(USER_SLOT) or "{}")
    assert stored["email"] == "ada@example.com"
    assert "joinedDate" in stored


@pytest.mark.asyncio
async def test_login_reports_storage_failure(clock: FakeClock) -> None:
    storage = FlakyStorage()
    storage.fail_writes = True
    session = SessionStore(storage, clock=clock)

    assert await session.login("ada@example.com", "secret") is False
    assert session.user is None


@pytest.mark.asyncio
async def test_register_uses_time_derived_id(storage: MemoryStorage, clock: FakeClock) -> None:
    session = SessionStore(storage, clock=clock)

    assert await session.register("bo@example.com", "pw", "Bo")

    assert session.user is not None
    assert session.user.id == str(int(clock.now.timestamp() * 1000))
    assert session.user.name == "Bo"
    assert session.user.bio == REGISTER_BIO


@pytest.mark.asyncio
async def test_logout_clears_slot_and_user(storage: MemoryStorage, clock: FakeClock) -> None:
    session = await _signed_in(storage, clock)

    await session.logout()

    assert session.user is None
    assert await storage.get_item(USER_SLOT) is None


@pytest.mark.asyncio
async def test_update_profile_without_user_is_a_no_op(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = SessionStore(storage, clock=clock)

    assert await session.update_profile(ProfileUpdate(bio="Hi")) is None
    assert await storage.get_item(USER_SLOT) is None


@pytest.mark.asyncio
async def test_update_profile_merges_and_persists(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)

    updated = await session.update_profile(
        ProfileUpdate(city="Oakland", hobbies=["cycling", "jazz"])
    )

    assert updated is not None
    assert updated.city == "Oakland"
    assert updated.hobbies == ["cycling", "jazz"]
    assert updated.bio == LOGIN_BIO
    reloaded = SessionStore(storage, clock=clock)
    await reloaded.load()
    assert reloaded.user == updated


@pytest.mark.asyncio
async def test_update_profile_failure_propagates_and_keeps_user(clock: FakeClock) -> None:
    storage = FlakyStorage()
    session = await _signed_in(storage, clock)
    before = session.user
    storage.fail_writes = True

    with pytest.raises(PersistenceError):
        await session.update_profile(ProfileUpdate(city="Oakland"))

    assert session.user == before


@pytest.mark.asyncio
async def test_refresh_profile_overlays_remote_document(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)
    client = StubProfileClient(
        {"bio": "Remote bio", "interests": ["food"], "updatedAt": "2025-01-01T00:00:00Z"}
    )

    refreshed = await session.refresh_profile(client)  # type: ignore[arg-type]

    assert client.fetched == ["1"]
    assert refreshed is not None
    assert refreshed.bio == "Remote bio"
    assert refreshed.interests == ["food"]
    assert refreshed.email == "ada@example.com"
    assert session.user == refreshed


@pytest.mark.asyncio
async def test_refresh_profile_keeps_cached_user_on_failure(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)
    cached = session.user

    refreshed = await session.refresh_profile(StubProfileClient(fail=True))  # type: ignore[arg-type]

    assert refreshed == cached
    assert session.user == cached


@pytest.mark.asyncio
async def test_refresh_profile_without_session_returns_default(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = SessionStore(storage, clock=clock)
    await session.load()

    refreshed = await session.refresh_profile(  # type: ignore[arg-type]
        StubProfileClient(fail=True), user_id="77"
    )

    assert refreshed == User(id="77")
    assert session.user is None
    assert await session.refresh_profile(StubProfileClient()) is None  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_push_profile_sends_changes(storage: MemoryStorage, clock: FakeClock) -> None:
    session = await _signed_in(storage, clock)
    client = StubProfileClient()

    assert await session.push_profile(client, ProfileUpdate(country="USA"))  # type: ignore[arg-type]

    assert client.updates == [("1", {"country": "USA"})]
    assert session.user is not None
    assert session.user.country == "USA"


@pytest.mark.asyncio
async def test_push_profile_reports_remote_failure(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)

    pushed = await session.push_profile(  # type: ignore[arg-type]
        StubProfileClient(fail=True), ProfileUpdate(country="USA")
    )

    assert pushed is False
    assert session.user is not None
    assert session.user.country == "USA"


def _profile_client(response: httpx.Response) -> ProfileClient:
    return ProfileClient(
        "http://citysync.test", transport=httpx.MockTransport(lambda request: response)
    )


@pytest.mark.asyncio
async def test_refresh_profile_survives_non_json_reply(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)
    cached = session.user

    async with _profile_client(
        httpx.Response(200, content=b"<html>gateway</html>")
    ) as client:
        refreshed = await session.refresh_profile(client)

    assert refreshed == cached
    assert session.user == cached


@pytest.mark.asyncio
async def test_push_profile_reports_unexpected_reply_as_failure(
    storage: MemoryStorage, clock: FakeClock
) -> None:
    session = await _signed_in(storage, clock)

    async with _profile_client(httpx.Response(200, json={"ok": 1})) as client:
        pushed = await session.push_profile(client, ProfileUpdate(country="USA"))

    assert pushed is False
    assert session.user is not None
    assert session.user.country == "USA"
