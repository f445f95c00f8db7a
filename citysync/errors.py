"""Exception hierarchy shared by the storage, sync and profile layers."""

from __future__ import annotations


class CitySyncError(Exception):
    """Base class for every error raised by the CitySync data layer."""


class StorageUnavailableError(CitySyncError):
    """Raised when the persisted key-value store cannot be reached."""


class PersistenceError(CitySyncError):
    """Raised when a mutation could not be written to the persisted store.

    The in-memory collections are left untouched whenever this is raised.
    """


class StoreNotReadyError(CitySyncError):
    """Raised when a request reaches a store that has not finished loading."""


class ProfileStoreError(CitySyncError):
    """Raised when the remote profile document store rejects an operation."""


class ProfileClientError(CitySyncError):
    """Raised by the profile RPC client when a call fails."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "CitySyncError",
    "PersistenceError",
    "ProfileClientError",
    "ProfileStoreError",
    "StorageUnavailableError",
    "StoreNotReadyError",
]
