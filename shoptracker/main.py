from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from shoptracker.config import settings
from shoptracker.api.v1.router import api_router
from shoptracker.core.exceptions import ShopTrackerError
from shoptracker.database import init_db, async_session_factory
from shoptracker.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create tables if they do not exist
    - Start background scheduler (periodic queue rebalance)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Locations", "description": "Processing stations and their sequence"},
    {"name": "Orders", "description": "Order lifecycle, rush flag, shipping and audit trail"},
    {"name": "Order Locations", "description": "Per-location work: start, pause, finish, quantities"},
    {"name": "Queue", "description": "Global priority queue and per-location work queues"},
]

API_DESCRIPTION = """
## Shop floor queue scheduler

Keeps a global priority queue of active orders and one ordered work queue
per processing location.

### Queue rules

- Rush orders always precede non-rush orders, oldest rush first
- Positions are dense (1..N) in every queue
- Starting or finishing work queues the order at the next location

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Bad Request - Queue rule violated (see `min_allowed_position`) |
| 404 | Not Found - Order, location or assignment doesn't exist |
| 409 | Conflict - Duplicate resource |
| 422 | Unprocessable Entity - Malformed request body |
| 500 | Internal Server Error |
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(ShopTrackerError)
async def shoptracker_exception_handler(request: Request, exc: ShopTrackerError):
    """Translate scheduler errors into their HTTP status."""
    logger.warning(
        f"{request.method} {request.url.path} rejected: {type(exc).__name__}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the traceback and return a JSON 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    error_detail = {
        "error": str(exc) if settings.DEBUG else "Internal server error",
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    return JSONResponse(status_code=500, content=error_detail)


@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint.

    Checks database connectivity and reports scheduled jobs.
    """
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "checks": {},
    }

    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    health_status["checks"]["jobs"] = get_job_status()

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
