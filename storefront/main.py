from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from storefront.config import settings
from storefront.api.v1.router import api_router
from storefront.core.exceptions import StorefrontError
from storefront.database import init_db, async_session_factory


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
    - Create any missing tables
    """
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    yield

    logger.info(f"Shutting down {settings.APP_NAME}")


OPENAPI_TAGS = [
    {"name": "Order Tracking", "description": "Five-step order tracking timeline and admin dashboard"},
    {"name": "Addresses", "description": "Customer delivery addresses with a single default"},
    {"name": "Orders", "description": "Customer order cancellation"},
    {"name": "Locations", "description": "Province and ward lookup"},
    {"name": "Health", "description": "Service health"},
]

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


@app.exception_handler(StorefrontError)
async def storefront_exception_handler(request: Request, exc: StorefrontError):
    """Render service errors as structured JSON."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.kind,
            "message": exc.message,
            "details": exc.details,
            "path": str(request.url.path),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Last-resort handler for unexpected errors."""
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc!r}")

    error_detail = {
        "error": "internal_error",
        "message": str(exc) if settings.DEBUG else "Internal server error",
        "details": {"type": type(exc).__name__},
        "path": str(request.url.path),
    }
    if settings.DEBUG:
        error_detail["details"]["traceback"] = traceback.format_exc()

    return JSONResponse(status_code=500, content=error_detail)


HEALTH_QUERY = text("SELECT 1")


async def _database_status() -> str:
    try:
        async with async_session_factory() as session:
            await session.execute(HEALTH_QUERY)
    except Exception as e:
        logger.error(f"Health check could not reach the database: {e}")
        return f"error: {e}"
    return "connected"


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus database reachability; 503 when the database is down."""
    database = await _database_status()
    healthy = database == "connected"
    body = {
        "status": "healthy" if healthy else "unhealthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {"database": database},
    }
    return JSONResponse(status_code=200 if healthy else 503, content=body)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
