"""
Tenancy Admin API Server

Entry point for the FastAPI application.
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1 import router as api_v1_router
from app.core.config import Settings, get_settings
from app.core.database import Database
from app.core.errors import ServiceError
from app.core.logging import configure_logging
from app.core.middleware import RequestContextMiddleware, SecurityHeadersMiddleware

log = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level, json_output=settings.log_json)

    app = FastAPI(
        title="Tenancy Admin",
        description="Organizations, projects, memberships and project API keys.",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.settings = settings
    app.state.db = database or Database.from_settings(settings)

    # Middleware (last added is outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "X-API-Key", "X-API-Secret", "X-Request-ID"],
    )
    app.add_middleware(RequestContextMiddleware, access_log=settings.enable_request_logging)

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status >= 500:
            log.error("request.failed", path=request.url.path, code=exc.code, error=exc.message)
        else:
            log.warning("request.rejected", path=request.url.path, code=exc.code, error=exc.message)
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    app.include_router(api_v1_router, prefix="/api/v1")

    @app.get("/health", tags=["System"])
    async def health_check(request: Request):
        """Liveness plus database connectivity."""
        database_status = await request.app.state.db.check_connection()
        healthy = database_status["status"] == "connected"
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={"status": "ok" if healthy else "degraded", "database": database_status},
        )

    @app.get("/health/db", tags=["System"])
    async def database_health(request: Request):
        database_status = await request.app.state.db.check_connection()
        healthy = database_status["status"] == "connected"
        return JSONResponse(status_code=200 if healthy else 503, content=database_status)

    @app.on_event("startup")
    async def on_startup():
        log.info("Tenancy Admin starting", port=settings.port)

    @app.on_event("shutdown")
    async def on_shutdown():
        log.info("Tenancy Admin shutting down")
        await app.state.db.dispose()

    return app


app = create_app()
