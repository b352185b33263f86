"""
FastAPI application initialization
"""

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from api.routes import health, cron, projects, notifications, stats
from api.dependencies import get_runner
from api.middleware import RequestContextMiddleware
from core.config import settings
from core.logging import setup_logging
from core.exceptions import (
    MonitorException,
    Unauthorized,
    MalformedSubject,
    SubjectNotFound,
    NoCredential,
    UpstreamUnavailable,
    RateLimitExceeded
)
from monitoring.scheduler import MonitorScheduler
from schemas.api import ErrorResponse, TriggerErrorResponse
import logging

setup_logging()

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Dev Space Monitor API",
    description="Commit watching, journal reminders and notification delivery",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(RequestContextMiddleware)

scheduler = None


# Include routers
app.include_router(health.router)
app.include_router(cron.router)
app.include_router(projects.router)
app.include_router(notifications.router)
app.include_router(stats.router)


# Status codes for errors that reach a route handler
ERROR_STATUS = [
    (SubjectNotFound, 404),
    (MalformedSubject, 400),
    (NoCredential, 401),
    (RateLimitExceeded, 429),
    (UpstreamUnavailable, 502),
]


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request: Request, exc: Unauthorized):
    logger.warning(f"Rejected {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=401,
        content=TriggerErrorResponse(error="Unauthorized").model_dump()
    )


@app.exception_handler(MonitorException)
async def monitor_exception_handler(request: Request, exc: MonitorException):
    status_code = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 500)
    if status_code >= 500:
        logger.error(
            f"{request.method} {request.url.path} failed: {exc.message}",
            extra={"error_context": exc.to_dict()}
        )
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(ErrorResponse(error=type(exc).__name__, detail=exc.message))
    )


@app.on_event("startup")
async def startup_event():
    """Application startup event"""
    global scheduler
    logger.info("Starting Dev Space Monitor API")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Database: {settings.DATABASE_URL.split('@')[1] if '@' in settings.DATABASE_URL else 'configured'}")

    if settings.SCHEDULER_ENABLED:
        scheduler = MonitorScheduler(get_runner())
        scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown event"""
    logger.info("Shutting down Dev Space Monitor API")
    if scheduler is not None:
        scheduler.stop()


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Dev Space Monitor API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "cron": ["/cron/monitor", "/cron/commit-monitor", "/cron/journey-reminders"],
            "projects": "/projects/{project_id}",
            "notifications": "/notifications",
            "stats": "/stats/runs"
        }
    }
