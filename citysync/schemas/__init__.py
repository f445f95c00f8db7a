"""Pydantic schemas for persisted entities and API payloads."""

from citysync.schemas.location import Location, LocationCreate  # noqa: F401
from citysync.schemas.preferences import (  # noqa: F401
    DetectedLocation,
    LocationPreferenceUpdate,
    LocationPreferenceView,
)
from citysync.schemas.review import Review, ReviewCreate  # noqa: F401
from citysync.schemas.session import (  # noqa: F401
    LoginRequest,
    ProfileSyncResult,
    RegisterRequest,
    SessionState,
)
from citysync.schemas.user import (  # noqa: F401
    ProfileLocation,
    ProfileUpdate,
    ProfileUpdateResult,
    User,
)
