"""Main FastAPI application entry point."""

import logging
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from access_service.api.v1.routes import api_keys, audit_logs, permissions, projects, roles
from access_service.core.config import settings
from access_service.core.exceptions import (
    AccessServiceError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    NotFoundError,
    PersistenceError,
    ValidationError,
)
from access_service.core.logging_config import configure_logging
from access_service.core.services import get_service_container
from access_service.db.database import init_db
from access_service.models.request import HealthResponse

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    ValidationError: 422,
    ConflictError: 409,
    NotFoundError: 404,
    AuthorizationError: 401,
    PersistenceError: 500,
    ConfigurationError: 500,
}


def status_code_for(exc: AccessServiceError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES.items():
        if isinstance(exc, error_type):
            return status_code
    return 500


# Initialize FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="API key lifecycle, role/permission graph and audit log service",
    docs_url="/docs",
    redoc_url="/redoc",
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(projects.router)
app.include_router(api_keys.router)
app.include_router(api_keys.auth_router)
app.include_router(permissions.router)
app.include_router(roles.router)
app.include_router(audit_logs.router)


@app.exception_handler(AccessServiceError)
async def access_service_error_handler(request: Request, exc: AccessServiceError) -> JSONResponse:
    """Render service errors as ``{"error": {code, message, recovery_hint}}``."""
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(
            "Request failed: %s",
            exc.message,
            extra={"error_code": exc.error_code, "path": request.url.path},
        )
    return JSONResponse(
        status_code=status_code,
        content={
            "error": {
                "code": exc.error_code,
                "message": exc.message,
                "recovery_hint": exc.recovery_hint,
            }
        },
    )


@app.get("/", tags=["root"])
async def root():
    return {
        "message": "Access Control Service API",
        "version": settings.app_version,
        "docs": "/docs",
    }


@app.get("/api/v1/health", response_model=HealthResponse, tags=["health"])
async def health_check() -> HealthResponse:
    """
    Health check endpoint.

    Returns:
        HealthResponse with status information
    """
    return HealthResponse(
        status="healthy",
        version=settings.app_version,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )


@app.on_event("startup")
async def startup_event():
    """Configure logging, create tables and initialize the service container."""
    configure_logging(settings.log_level, settings.effective_log_format)
    init_db()
    container = get_service_container()
    container.initialize()
    app.state.container = container
    logger.info("Access service started", extra={"version": settings.app_version})


@app.on_event("shutdown")
async def shutdown_event():
    container = getattr(app.state, "container", None)
    if container is not None:
        container.shutdown()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "access_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
