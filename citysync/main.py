import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from citysync import __version__
from citysync.api import example, locations, preferences, reviews, session, user
from citysync.errors import (
    PersistenceError,
    ProfileStoreError,
    StorageUnavailableError,
    StoreNotReadyError,
)
from citysync.schemas.error import ErrorType
from citysync.seed import load_seed
from citysync.services.location_preferences import LocationPreferences
from citysync.services.locations_store import LocationsStore
from citysync.services.profile_client import ProfileClient
from citysync.services.profile_store import build_profile_service
from citysync.services.session_store import SessionStore
from citysync.settings import AppSettings, get_settings
from citysync.storage import close_redis, get_storage
from citysync.utils.error_responses import (
    build_error_response,
    build_validation_error_response,
    validation_details,
)
from citysync.utils.request_context import (
    REQUEST_ID_HEADER,
    get_request_id,
    resolve_request_id,
    set_request_id,
)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def configure_logging(settings: AppSettings) -> None:
    logging.basicConfig(level=settings.log_level_numeric, format=LOG_FORMAT)


def validate_environment(settings: AppSettings) -> None:
    """Log warnings for optional configuration left at its defaults."""

    warnings = settings.optional_config_warnings()
    if not warnings:
        return

    logger.warning("=" * 60)
    logger.warning("Environment Configuration Warnings:")
    for warning in warnings:
        logger.warning("  • %s", warning)
    logger.warning("=" * 60)


# Exception handlers
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI request validation errors."""
    errors = validation_details(exc.errors())

    logger.warning(
        "Validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Request validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


async def pydantic_validation_exception_handler(request: Request, exc: ValidationError):
    """Handle pydantic errors raised while building domain objects."""
    errors = validation_details(exc.errors())

    logger.warning(
        "Pydantic validation error for request %s to %s: %s errors",
        get_request_id(),
        request.url.path,
        len(errors),
    )

    error_response = build_validation_error_response(
        message="Data validation failed",
        detail=f"{len(errors)} validation error(s)",
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        path=str(request.url.path),
        errors=errors,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(mode="json"),
    )


async def store_not_ready_exception_handler(request: Request, exc: StoreNotReadyError):
    logger.info(
        "Request %s to %s arrived before the store finished loading",
        get_request_id(),
        request.url.path,
    )

    error_response = build_error_response(
        error_type=ErrorType.SERVICE_UNAVAILABLE,
        message="Service is starting up",
        detail=str(exc),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        path=str(request.url.path),
        retry_after=1,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response.model_dump(mode="json"),
    )


async def storage_exception_handler(request: Request, exc: Exception):
    """Handle writes that could not reach the persisted store."""
    logger.error(
        "Storage error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        str(exc),
    )

    error_response = build_error_response(
        error_type=ErrorType.STORAGE_ERROR,
        message="Failed to persist changes",
        detail=str(exc),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        path=str(request.url.path),
        retry_after=5,
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=error_response.model_dump(mode="json"),
    )


async def profile_store_exception_handler(request: Request, exc: ProfileStoreError):
    logger.error(
        "Profile store error for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        str(exc),
    )

    error_response = build_error_response(
        error_type=ErrorType.PROFILE_STORE_ERROR,
        message="Profile store request failed",
        detail=str(exc),
        status_code=status.HTTP_502_BAD_GATEWAY,
        path=str(request.url.path),
        retry_after=3,
    )
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content=error_response.model_dump(mode="json"),
    )


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other unhandled exceptions."""
    logger.exception(
        "Unhandled exception for request %s to %s: %s",
        get_request_id(),
        request.url.path,
        type(exc).__name__,
    )

    error_response = build_error_response(
        error_type=ErrorType.INTERNAL_ERROR,
        message="Internal server error",
        detail=f"An unexpected error occurred: {type(exc).__name__}",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        path=str(request.url.path),
        retry_after=5,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(mode="json"),
    )


async def add_request_id(request: Request, call_next):
    """Add unique request ID to each request for tracking."""
    request_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
    set_request_id(request_id)
    response = await call_next(request)
    response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def healthcheck() -> dict[str, str]:
    """Simple health endpoint for readiness checks."""
    return {"status": "ok"}


def create_app(settings: AppSettings | None = None) -> FastAPI:
    """Build the FastAPI application bound to ``settings``.

    The lifespan resolves the key-value store (Redis, or process memory when
    Redis is disabled or unreachable), loads the locations snapshot, the
    signed-in session and the saved city, and wires the profile service and
    client before the first request is served.
    """

    active = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        validate_environment(active)

        storage = await get_storage(active)
        store = LocationsStore(
            storage,
            seed=load_seed(active.seed_data_path),
            recent_limit=active.recent_reviews_limit,
            author_id=active.placeholder_user_id,
            author_name=active.placeholder_user_name,
        )
        app.state.storage = storage
        app.state.locations_store = store
        session_store = SessionStore(storage)
        location_preferences = LocationPreferences(storage)
        profile_client = ProfileClient.from_settings(active)
        app.state.session_store = session_store
        app.state.location_preferences = location_preferences
        app.state.profile_service = build_profile_service(active)
        app.state.profile_client = profile_client

        await store.load()
        await session_store.load()
        await location_preferences.load()
        logger.info("CitySync API ready (storage: %s)", type(storage).__name__)

        yield

        logger.info("Shutting down CitySync API")
        await profile_client.aclose()
        await close_redis()

    app = FastAPI(
        title="CitySync API",
        version=__version__,
        description="Locations, reviews and profiles for the CitySync city guide.",
        lifespan=lifespan,
        redirect_slashes=False,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=active.cors_allow_origins,
        allow_credentials=active.cors_allow_origins != ["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(add_request_id)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ValidationError, pydantic_validation_exception_handler)
    app.add_exception_handler(StoreNotReadyError, store_not_ready_exception_handler)
    app.add_exception_handler(PersistenceError, storage_exception_handler)
    app.add_exception_handler(StorageUnavailableError, storage_exception_handler)
    app.add_exception_handler(ProfileStoreError, profile_store_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.add_api_route("/health", healthcheck, methods=["GET"], tags=["system"])
    app.include_router(example.router, prefix="/api/example", tags=["example"])
    app.include_router(user.router, prefix="/api/user", tags=["user"])
    app.include_router(session.router, prefix="/api/session", tags=["session"])
    app.include_router(
        preferences.router, prefix="/api/preferences", tags=["preferences"]
    )
    app.include_router(locations.router, prefix="/api/locations", tags=["locations"])
    app.include_router(reviews.router, prefix="/api/reviews", tags=["reviews"])

    return app


configure_logging(get_settings())
app = create_app()
