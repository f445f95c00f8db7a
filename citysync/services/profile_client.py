"""HTTP client for the profile procedures exposed under ``/api/user/profile``."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from citysync.errors import ProfileClientError
from citysync.schemas.user import ProfileUpdate, ProfileUpdateResult
from citysync.settings import DEFAULT_API_BASE_URL, AppSettings

logger = logging.getLogger(__name__)

PROFILE_PATH = "/api/user/profile"
USER_ID_HEADER = "x-user-id"
DEFAULT_HEADERS = {
    "User-Agent": "CitySync-ProfileClient/1.0",
    "Accept": "application/json",
}


class ProfileClient:
    """Thin async wrapper around ``httpx.AsyncClient`` for profile calls.

    Every request carries the caller identity in the ``x-user-id`` header.
    Transport problems and non-2xx responses are raised as
    :class:`~citysync.errors.ProfileClientError`.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=DEFAULT_HEADERS,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings: AppSettings, **kwargs: Any) -> ProfileClient:
        return cls(settings.api_base_url, **kwargs)

    async def __aenter__(self) -> ProfileClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_profile(self, user_id: str) -> dict[str, Any] | None:
        """Return the stored profile document for ``user_id`` or ``None``."""

        response = await self._request("GET", user_id)
        try:
            return response.json()
        except ValueError as exc:
            raise self._malformed("GET", user_id, exc) from exc

    async def update_profile(
        self, user_id: str, update: ProfileUpdate
    ) -> ProfileUpdateResult:
        response = await self._request("PATCH", user_id, json=update.changes())
        try:
            return ProfileUpdateResult.model_validate(response.json())
        except ValueError as exc:
            raise self._malformed("PATCH", user_id, exc) from exc

    @staticmethod
    def _malformed(method: str, user_id: str, exc: ValueError) -> ProfileClientError:
        logger.warning(
            "Profile %s for user %s returned an unreadable body: %s", method, user_id, exc
        )
        return ProfileClientError(f"Malformed profile response: {exc}")

    async def _request(
        self, method: str, user_id: str, *, json: dict[str, Any] | None = None
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                PROFILE_PATH,
                headers={USER_ID_HEADER: user_id},
                json=json,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            logger.warning("Profile %s for user %s failed with HTTP %s", method, user_id, status)
            raise ProfileClientError(
                f"Profile request failed with status {status}", status_code=status
            ) from exc
        except httpx.HTTPError as exc:
            logger.warning("Profile %s for user %s failed: %s", method, user_id, exc)
            raise ProfileClientError(f"Profile request failed: {exc}") from exc
        return response


__all__ = ["PROFILE_PATH", "ProfileClient", "USER_ID_HEADER"]
