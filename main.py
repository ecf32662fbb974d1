"""
Docket Scheduler - Main Application Entry Point

Calendar auto-scheduling service for legal-practice task management.
"""

import math
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from docket.core.config import get_settings
from docket.core.exceptions import ConcurrencyError, InfrastructureError, SchedulingLockTimeoutError
from docket.core.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown events."""
    settings = get_settings()
    logger.info(f"Starting Docket Scheduler in {settings.ENVIRONMENT} mode...")

    if settings.is_local:
        from docket.infrastructure.local.database import init_db

        await init_db()

    yield

    logger.info("Shutting down Docket Scheduler...")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Docket Scheduler",
        description="Unified calendar auto-scheduler for tasks, meetings and court dates",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    @app.exception_handler(ConcurrencyError)
    async def concurrency_error_handler(request: Request, exc: ConcurrencyError):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"detail": {"message": exc.message, "reason": exc.reason, **exc.details}},
        )

    @app.exception_handler(InfrastructureError)
    async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
        logger.warning(f"{request.method} {request.url.path} failed: {exc.message}")
        headers = {}
        if isinstance(exc, SchedulingLockTimeoutError):
            headers["Retry-After"] = str(max(1, math.ceil(exc.timeout_seconds)))
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE if exc.retryable else status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": {"message": exc.message, "retryable": exc.retryable}},
            headers=headers,
        )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    from docket.api import calendar, events, tasks

    app.include_router(tasks.router, prefix="/api/tasks", tags=["tasks"])
    app.include_router(calendar.router, prefix="/api/calendar", tags=["calendar"])
    app.include_router(events.router, prefix="/api/events", tags=["events"])

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "event_source": settings.EVENT_SOURCE,
            "version": "0.1.0",
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )
