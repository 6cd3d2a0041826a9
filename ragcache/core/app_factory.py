"""Application factory."""
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import time
from typing import Dict, Any

from ragcache.core.config import settings
from ragcache.core.errors import ServiceError
from ragcache.core.logging import setup_logging, get_logger
from ragcache.core.lifecycle import lifespan
from ragcache.api.admin.router import router as admin_router

# Set up logging (should be done early)
setup_logging(settings.log_level, settings.log_format)
logger = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # Add request timing middleware
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        process_time = time.time() - start_time
        response.headers["X-Process-Time"] = str(process_time)
        return response

    # Exception handlers
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        logger.error(f"Service error: {exc.message}")
        return JSONResponse(
            status_code=503 if exc.recoverable else 500,
            content=exc.to_dict(),
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        logger.error(f"Validation error: {exc}")
        return JSONResponse(
            status_code=400,
            content={"error": "Bad Request", "message": str(exc)},
        )

    # Include routers
    app.include_router(admin_router, prefix=f"{settings.api_prefix}/admin", tags=["admin"])

    @app.get("/")
    async def root() -> Dict[str, Any]:
        """Root endpoint."""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "status": "operational",
            "docs": f"{settings.api_prefix}/docs",
        }

    return app
