"""Tests for ``citysync.main``: exception handlers and the application lifespan."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest
from fastapi import Request, status
from starlette.datastructures import Headers

import citysync.main as citysync_main
from citysync.errors import PersistenceError, ProfileStoreError
from citysync.schemas.error import ErrorResponse, ErrorType
from citysync.services.location_preferences import LocationPreferences
from citysync.services.locations_store import LocationsStore, StoreState
from citysync.services.profile_client import ProfileClient
from citysync.services.profile_store import ProfileService
from citysync.services.session_store import SessionStore
from citysync.settings import AppSettings
from citysync.storage import MemoryStorage
from citysync.utils.request_context import clear_request_id, set_request_id


def _build_request(path: str = "/resource") -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": path,
        "headers": Headers().raw,
    }
    return Request(scope)


@pytest.mark.asyncio
async def test_storage_exception_handler_uses_builder(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    token = set_request_id("req-2")
    called: dict[str, object] = {}

    def fake_builder(**kwargs):
        called["kwargs"] = kwargs
        return ErrorResponse(
            error_type=ErrorType.STORAGE_ERROR,
            message="Failed to persist changes",
            detail="write failed",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            timestamp=datetime(2025, 1, 1, tzinfo=UTC),
            request_id="req-2",
            path="/api/reviews",
            retry_after=5,
        )

    monkeypatch.setattr(citysync_main, "build_error_response", fake_builder)

    try:
        response = await citysync_main.storage_exception_handler(
            _build_request("/api/reviews"), PersistenceError("write failed")
        )
    finally:
        clear_request_id(token)

    assert called["kwargs"]["path"] == "/api/reviews"
    assert called["kwargs"]["error_type"] is ErrorType.STORAGE_ERROR
    assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE


@pytest.mark.asyncio
async def test_profile_store_exception_handler_returns_bad_gateway() -> None:
    response = await citysync_main.profile_store_exception_handler(
        _build_request("/api/user/profile"),
        ProfileStoreError("Failed to update profile: quota exceeded"),
    )

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    body = json.loads(response.body.decode())
    assert body["error_type"] == "profile_store_error"
    assert body["detail"] == "Failed to update profile: quota exceeded"


@pytest.mark.asyncio
async def test_generic_exception_handler_hides_details() -> None:
    response = await citysync_main.generic_exception_handler(
        _build_request("/api/locations"), KeyError("secret")
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    body = json.loads(response.body.decode())
    assert body["detail"] == "An unexpected error occurred: KeyError"


@pytest.mark.asyncio
async def test_lifespan_wires_stores_from_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    closed: list[bool] = []

    async def _record_close() -> None:
        closed.append(True)

    monkeypatch.setattr(citysync_main, "close_redis", _record_close)
    app = citysync_main.create_app(
        AppSettings(
            use_memory_storage=True,
            use_memory_profiles=True,
            recent_reviews_limit=2,
        )
    )

    async with app.router.lifespan_context(app):
        store = app.state.locations_store
        assert isinstance(store, LocationsStore)
        assert isinstance(app.state.storage, MemoryStorage)
        assert isinstance(app.state.profile_service, ProfileService)
        assert isinstance(app.state.session_store, SessionStore)
        assert isinstance(app.state.location_preferences, LocationPreferences)
        assert isinstance(app.state.profile_client, ProfileClient)
        assert app.state.session_store.state is StoreState.READY
        assert app.state.location_preferences.state is StoreState.READY
        assert store.is_ready
        assert len(store.get_recent_reviews()) == 2

    assert closed == [True]
