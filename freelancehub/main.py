"""Main FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from freelancehub.api.v1.router import api_router
from freelancehub.core.config import settings
from freelancehub.core.database import Database
from freelancehub.core.exceptions import InternalError, ServiceError, ValidationFailed
from freelancehub.core.logging import setup_logging

logger = logging.getLogger(__name__)


def _envelope(message: str, data=None, errors=None) -> dict:
    return {"success": False, "message": message, "data": data, "errors": errors}


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.__cause__!r}")
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder(_envelope(exc.message, data=exc.data)),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        # Drop the leading "body"/"query" segment
        location = [str(part) for part in error.get("loc", ())[1:]]
        errors.append({"field": ".".join(location) or None, "message": error.get("msg", "")})
    return JSONResponse(
        status_code=ValidationFailed.status_code,
        content=_envelope(ValidationFailed.message, errors=errors),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
    content = _envelope(InternalError.message)
    if settings.is_development:
        content["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_app(database: Optional[Database] = None) -> FastAPI:
    """Build the application.

    ``database`` lets callers (tests) supply their own; otherwise one is
    created from settings at startup and disposed of at shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan events."""
        setup_logging()
        owned = database is None
        db = Database.from_settings(settings) if owned else database
        app.state.db = db
        if settings.CREATE_TABLES_ON_STARTUP:
            await db.create_all()
        logger.info(f"FreelanceHub API started ({settings.ENVIRONMENT})")
        yield
        if owned:
            await db.dispose()

    app = FastAPI(
        title="FreelanceHub API",
        description="Accounts, authentication and profiles for a freelance marketplace",
        version="0.1.0",
        lifespan=lifespan,
    )
    if database is not None:
        app.state.db = database

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=False,  # Must be False when allow_origins is ["*"]
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(api_router, prefix="/api")

    @app.get("/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        database_ok = await request.app.state.db.ping()
        return {
            "status": "healthy" if database_ok else "degraded",
            "service": "freelancehub",
            "database": "connected" if database_ok else "unavailable",
        }

    return app


app = create_app()
