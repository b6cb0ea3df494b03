"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from musicreg import __version__
from musicreg.api.dependencies import close_services, init_services
from musicreg.api.models import ErrorDetail, ErrorResponse
from musicreg.api.routes import attendance, periods, registrations
from musicreg.config import Settings
from musicreg.domain.exceptions import ErrorType, MusicRegError
from musicreg.logging import sanitize_for_log
from musicreg.store import StoreError

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from musicreg.store import TableStore

logger = logging.getLogger("musicreg.api")


def _error_response(
    status_code: int,
    message: str,
    code: str,
    error_type: str,
    details: dict | None = None,
) -> JSONResponse:
    body = ErrorResponse(
        error=ErrorDetail(message=message, code=code, type=error_type, details=details or None)
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())


def register_exception_handlers(app: FastAPI, expose_errors: bool = False) -> None:
    """Translate exceptions into the JSON error envelope.

    Args:
        app: Application to configure
        expose_errors: Show internal error messages (development only)
    """

    @app.exception_handler(MusicRegError)
    async def musicreg_error_handler(_request: Request, exc: MusicRegError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Internal error: %s", sanitize_for_log(exc.message))
        return _error_response(
            exc.status_code, exc.message, exc.code, exc.error_type.value, exc.details
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        _request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        fields = [".".join(str(part) for part in err["loc"][1:]) for err in exc.errors()]
        return _error_response(
            status.HTTP_400_BAD_REQUEST,
            f"Invalid request: {', '.join(f for f in fields if f) or 'body'}",
            "VALIDATION_ERROR",
            ErrorType.VALIDATION.value,
            {"fields": fields},
        )

    @app.exception_handler(StoreError)
    async def store_error_handler(_request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store error: %s", sanitize_for_log(str(exc)))
        message = str(exc) if expose_errors else "Internal server error"
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message,
            "INTERNAL_ERROR",
            ErrorType.SERVER.value,
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error: %s", sanitize_for_log(str(exc)))
        message = str(exc) if expose_errors else "Internal server error"
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            message,
            "INTERNAL_ERROR",
            ErrorType.SERVER.value,
        )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    init_services(app.state.settings, app.state.store)
    yield
    close_services()


def create_app(settings: Settings | None = None, store: TableStore | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Application settings (read from the environment when omitted)
        store: Store to use instead of the one settings select
    """
    settings = settings or Settings.from_env()
    settings.validate()

    app = FastAPI(
        title="musicreg API",
        description="REST API for music-lesson registration",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, expose_errors=settings.is_development)

    app.include_router(registrations.router, prefix="/api")
    app.include_router(attendance.router, prefix="/api")
    app.include_router(periods.router, prefix="/api")

    return app
