"""
gymdesk/main.py

Purpose: Application entry point

- Initializes FastAPI app
- Loads configuration and logging
- Registers API routes (members, scans, reports)
- No business logic should be written here
- Manages application lifecycle (startup/shutdown)
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import time

from gymdesk.core.config import settings, validate_settings
from gymdesk.core.errors import add_exception_handlers
from gymdesk.core.logging import setup_logging, get_logger
from gymdesk.db.mongo import connect_to_mongo, close_mongo_connection, check_database_health
from gymdesk.db.indexes import create_indexes
from gymdesk.api import members, scans, reports

# Initialize logging first
setup_logging()
logger = get_logger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info("Starting GymDesk application...")

    try:
        validate_settings()
        logger.info("Configuration validated")

        await connect_to_mongo()

        await create_indexes()
        logger.info("Database indexes created")

        is_healthy = await check_database_health()
        if not is_healthy:
            logger.warning("Database health check failed during startup")

        logger.info(f"GymDesk started (environment={settings.ENVIRONMENT}, debug={settings.DEBUG})")

    except Exception as e:
        logger.critical(f"Failed to start application: {str(e)}", exc_info=True)
        raise

    yield  # Application runs here

    # Shutdown
    logger.info("Shutting down GymDesk application...")
    await close_mongo_connection()
    logger.info("GymDesk shut down")


app = FastAPI(
    title="GymDesk - Gym Membership & Check-in",
    description="Members, subscriptions and QR check-in/out for the front desk",
    version=VERSION,
    lifespan=lifespan,
    debug=settings.DEBUG,
    docs_url="/docs" if settings.is_development else None,  # Disable docs in production
    redoc_url="/redoc" if settings.is_development else None,
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request timing middleware
@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """Add processing time header to all responses."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)

    # A scan should clear the desk well within a second
    if process_time > 1.0:
        logger.warning(
            f"Slow request detected: {request.method} {request.url.path}",
            extra={"process_time": process_time}
        )

    return response


add_exception_handlers(app)

app.include_router(members.router, prefix=settings.API_PREFIX)
app.include_router(scans.router, prefix=settings.API_PREFIX)
app.include_router(reports.router, prefix=settings.API_PREFIX)


@app.get("/", tags=["Health"])
async def root():
    """Root endpoint - basic info."""
    return {
        "name": "GymDesk API",
        "version": VERSION,
        "status": "running",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.
    Checks database connectivity.
    """
    db_healthy = await check_database_health()
    health_status = {
        "status": "healthy" if db_healthy else "degraded",
        "timestamp": time.time(),
        "environment": settings.ENVIRONMENT,
        "version": VERSION,
        "checks": {"database": "healthy" if db_healthy else "unhealthy"}
    }

    status_code = 200 if db_healthy else 503
    return JSONResponse(content=health_status, status_code=status_code)


# Readiness probe (for Kubernetes/orchestration)
@app.get("/ready", tags=["Health"])
async def readiness_check():
    """
    Readiness probe - indicates if app is ready to receive traffic.
    """
    if await check_database_health():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "not_ready", "reason": "database_unavailable"}
    )


# Liveness probe (for Kubernetes/orchestration)
@app.get("/live", tags=["Health"])
async def liveness_check():
    """
    Liveness probe - indicates if app is alive.
    """
    return {"status": "alive"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "gymdesk.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.is_development,
        log_level=settings.LOG_LEVEL.lower()
    )
