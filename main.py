"""
Pickup Slot Scheduler — Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import structlog
from datetime import datetime

from config import settings, check_connection

# Configure structured logging
logging.basicConfig(level=getattr(logging, settings.log_level), format="%(message)s")

structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer() if settings.is_production
            else structlog.dev.ConsoleRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

from services.clock import get_clock  # noqa: E402
from services.reconciliation_scheduler import get_reconciliation_scheduler  # noqa: E402


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Check storage, start reconciliation loops
    Shutdown: Stop reconciliation loops
    """
    # Startup
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
        storage_backend=settings.storage_backend,
        simulated_clock=settings.simulated_clock,
    )

    db_status = check_connection()
    if db_status["status"] == "healthy":
        logger.info("storage_connected", **db_status)
    else:
        logger.error("storage_connection_failed", error=db_status.get("error"))

    scheduler = None
    if settings.reconciliation_enabled:
        scheduler = get_reconciliation_scheduler()
        await scheduler.start()

    yield

    # Shutdown
    logger.info("application_shutting_down")
    if scheduler is not None:
        await scheduler.stop()


# Create FastAPI app
app = FastAPI(
    title="Pickup Slot Scheduler",
    description="Minute-level pickup scheduling with kitchen delay escalation for food ordering",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:5173",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status, storage state and the scheduling clock
    """
    db_status = check_connection()

    return {
        "status": "healthy" if db_status["status"] == "healthy" else "degraded",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "database": db_status,
        "clock": get_clock().state().model_dump(mode="json"),
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Pickup Slot Scheduler API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "orders": "/api/orders",
            "locations": "/api/locations",
            "slots": "/api/slots/{location_id}",
            "clock": "/api/clock",
            "reconciliation": "/api/reconciliation",
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes import (  # noqa: E402
    orders_router,
    locations_router,
    slots_router,
    clock_router,
    reconciliation_router,
)

app.include_router(orders_router)  # Prefix already in router
app.include_router(locations_router)
app.include_router(slots_router)
app.include_router(clock_router)
app.include_router(reconciliation_router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
