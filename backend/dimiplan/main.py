"""
Dimiplan FastAPI Application Entry Point.

Run with: uvicorn dimiplan.main:app --reload
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dimiplan.api.routes import auth, chat, folders, planners, tasks
from dimiplan.config import get_settings, sanitize_error
from dimiplan.crypto import get_envelope
from dimiplan.db.session import engine
from dimiplan.errors import (
    ConfigMissingError,
    DecryptionError,
    DimiplanError,
    EncryptionError,
    InvalidInputError,
    OwnerNotInitializedError,
    ResourceNotFoundError,
    TransactionAbortedError,
    UniqueViolationError,
)

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager for startup/shutdown."""
    # Startup: a missing secret or a broken cipher stops the process here
    envelope = get_envelope()
    envelope.codec.self_test()
    logger.info("Encryption layer ready (key version %d)", envelope.codec.deriver.current_version)
    yield
    # Shutdown
    await engine.dispose()


app = FastAPI(
    title=settings.app_name,
    description="Personal planner API with per-user encryption at rest",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# ERROR MAPPING
# =============================================================================

ERROR_STATUS: dict[type[DimiplanError], int] = {
    ResourceNotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidInputError: status.HTTP_400_BAD_REQUEST,
    UniqueViolationError: status.HTTP_409_CONFLICT,
    OwnerNotInitializedError: status.HTTP_403_FORBIDDEN,
    TransactionAbortedError: status.HTTP_503_SERVICE_UNAVAILABLE,
    EncryptionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    DecryptionError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ConfigMissingError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(error: DimiplanError) -> int:
    for error_type in type(error).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@app.exception_handler(DimiplanError)
async def dimiplan_error_handler(request: Request, exc: DimiplanError) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
        detail = sanitize_error(exc)
    elif isinstance(exc, OwnerNotInitializedError):
        detail = "User not provisioned"
    else:
        detail = str(exc)

    headers = {"Retry-After": "1"} if isinstance(exc, TransactionAbortedError) else None
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


# Include routers
app.include_router(auth.router)
app.include_router(folders.router)
app.include_router(planners.router)
app.include_router(tasks.router)
app.include_router(chat.router)


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}
