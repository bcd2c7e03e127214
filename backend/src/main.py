"""
Clan roster HTTP application.

Wires the roster routers under /api, translates service-layer exceptions
into status codes in one place and exposes an unauthenticated /health probe.

Run with:
    uvicorn backend.src.main:app --reload

Environment Variables:
    ROSTER_DB_URL: SQLAlchemy database URL
    ROSTER_CORS_ORIGINS: Comma-separated origins of the roster web client
    ROSTER_ENV: production switches logging to rotating JSON files
    ROSTER_LOG_LEVEL: DEBUG/INFO/WARNING/ERROR/CRITICAL (default: INFO)
"""

from contextlib import asynccontextmanager
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from backend.src.api import communication_tree, events, slots, squads
from backend.src.config.settings import get_settings
from backend.src.services.exceptions import (
    ConflictError,
    CycleDetectedError,
    InvalidStateError,
    NotFoundError,
    PermissionDeniedError,
    ServiceError,
    ValidationError,
)
from backend.src.utils.logging_config import init_logging, get_logger


APP_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger("api")
    logger.info(f"Clan roster backend {APP_VERSION} starting")
    yield
    logger.info("Clan roster backend stopped")


init_logging()

app = FastAPI(
    title="Clan Roster API",
    description="Event roster, slot assignment and communication tree "
                "management for gaming clans.",
    version=APP_VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Error translation
# ============================================================================

# Checked in order; a bare ServiceError falls back to 400
SERVICE_ERROR_STATUS = (
    (NotFoundError, status.HTTP_404_NOT_FOUND, "Not Found"),
    (PermissionDeniedError, status.HTTP_403_FORBIDDEN, "Forbidden"),
    (InvalidStateError, status.HTTP_409_CONFLICT, "Invalid State"),
    (ConflictError, status.HTTP_409_CONFLICT, "Conflict"),
    (CycleDetectedError, status.HTTP_409_CONFLICT, "Cycle Detected"),
    (ValidationError, status.HTTP_400_BAD_REQUEST, "Validation Error"),
)


@app.exception_handler(ServiceError)
async def service_exception_handler(
    request: Request, exc: ServiceError
) -> JSONResponse:
    """
    Map a service error to its status code.

    The body is {"error", "message"} plus "field" for validation errors and
    "slot_guid" for slot conflicts.
    """
    status_code, error = status.HTTP_400_BAD_REQUEST, "Bad Request"
    for error_type, mapped_status, label in SERVICE_ERROR_STATUS:
        if isinstance(exc, error_type):
            status_code, error = mapped_status, label
            break

    content: Dict[str, Any] = {"error": error, "message": str(exc)}
    if isinstance(exc, ValidationError) and exc.field:
        content["field"] = exc.field
    if isinstance(exc, ConflictError) and exc.slot_guid:
        content["slot_guid"] = exc.slot_guid

    get_logger("api").info(
        f"{request.method} {request.url.path} -> {status_code}: {exc}",
        extra={"error_type": type(exc).__name__},
    )
    return JSONResponse(status_code=status_code, content=content)


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Log the driver error and answer 500 without leaking it."""
    get_logger("db").error(
        f"Database error on {request.method} {request.url.path}",
        extra={"error": str(exc), "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Database Error",
            "message": "The roster database could not complete the request.",
        },
    )


@app.get("/health", tags=["Health"])
async def health_check() -> Dict[str, Any]:
    return {"status": "healthy", "service": "clan-roster-backend", "version": APP_VERSION}


app.include_router(events.router, prefix="/api")
app.include_router(squads.router, prefix="/api")
app.include_router(slots.router, prefix="/api")
app.include_router(communication_tree.router, prefix="/api")
