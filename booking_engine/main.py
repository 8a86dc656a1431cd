"""
FastAPI application for the booking engine

Public booking pages and host dashboard; notifications go out through workers
"""
import logging

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from contextlib import asynccontextmanager
from sqlalchemy.exc import DBAPIError

from booking_engine.config.settings import get_settings
from booking_engine.core.exceptions import BookingEngineError, TransientStoreError
from booking_engine.core.middleware import correlation_id_middleware, request_logging_middleware
from booking_engine.core.monitoring import health_router
from booking_engine.api.v1.router import api_v1_router
from booking_engine.utils.my_logging import setup_logging

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    # Startup
    setup_logging()
    routes = [r for r in app.routes if isinstance(r, APIRoute)]
    logger.info(f"{settings.APP_NAME} starting up, {len(routes)} routes registered")
    logger.info("Public booking API at /api/v1/public, dashboard at /api/v1/dashboard, health at /health")

    yield

    # Shutdown
    logger.info(f"{settings.APP_NAME} shutting down")


async def booking_engine_error_handler(request: Request, exc: BookingEngineError):
    """Typed service errors -> status code + {"error", "detail", "retryable"}"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def store_error_handler(request: Request, exc: DBAPIError):
    """Lost connections and timeouts that escaped a service are safe to retry"""
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    if exc.connection_invalidated or isinstance(exc.orig, TimeoutError):
        error = TransientStoreError("Booking store is temporarily unavailable, please retry")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": "Unexpected store error", "retryable": False}
    )


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""

    app = FastAPI(
        title="Booking Engine API",
        description="Availability, slot generation and conflict-free booking",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "PUT"],
        allow_headers=["*"],
    )

    # Add custom middleware
    app.middleware("http")(request_logging_middleware)
    app.middleware("http")(correlation_id_middleware)

    app.add_exception_handler(BookingEngineError, booking_engine_error_handler)
    app.add_exception_handler(DBAPIError, store_error_handler)

    # Include routers
    app.include_router(health_router, prefix="/health", tags=["monitoring"])
    app.include_router(api_v1_router, prefix="/api/v1", tags=["api"])

    @app.get("/")
    async def root():
        return {
            "service": settings.APP_NAME,
            "version": "0.1.0",
            "status": "running",
            "endpoints": {
                "api": "/api/v1/",
                "health": "/health",
                "docs": "/docs" if settings.DEBUG else "disabled"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "booking_engine.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info"
    )
