"""FastAPI application for capstore.

This module provides the main FastAPI application with health endpoints,
API routes, error mapping and lifecycle management.

Run with:
    uvicorn capstore.main:app --reload

Examples:
    >>> # Health check
    >>> curl http://localhost:8000/health

    >>> # Reserve an upload
    >>> curl -X POST -H "Authorization: Bearer $TOKEN" \\
    ...     -d '{"bucket": "avatars", "key": "u1.png", "mimeType": "image/png"}' \\
    ...     http://localhost:8000/api/v1/storage/init-upload

Tests:
    - tests/unit/test_main.py
    - tests/integration/test_api_storage.py
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from capstore import __version__
from capstore.api.v1 import router as v1_router
from capstore.api.v1.storage import get_blob_store
from capstore.config import get_settings
from capstore.database import check_db_connection, close_db, init_db
from capstore.storage.errors import StorageError

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    database: bool
    storage: bool


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager.

    Handles startup and shutdown tasks:
    - Initialize database and blob store on startup
    - Close connections on shutdown
    """
    logger.info(f"Starting capstore v{__version__}")

    try:
        await init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")

    await get_blob_store().initialize()

    yield

    logger.info("Shutting down capstore")
    await close_db()


app = FastAPI(
    title="capstore",
    description="Self-hosted blob store with signed, short-lived upload and download URLs",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if settings.DEBUG else None,
    redoc_url="/redoc" if settings.DEBUG else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(v1_router)


# Exception handlers
@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError):
    """Map storage failures to their HTTP status."""
    if exc.status_code >= 500:
        logger.error(f"Storage failure on {request.url.path}: {exc.message}", exc_info=exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.message, "detail": None},
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions with consistent response format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail, "detail": None},
        headers=exc.headers,
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.exception(f"Unexpected error: {exc}")

    detail = str(exc) if settings.DEBUG else None
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "detail": detail},
    )


@app.get("/health", response_model=HealthResponse, tags=["Health"])
async def health_check() -> HealthResponse:
    """Check application health.

    Returns status of the database connection and the blob store root.
    """
    db_healthy = await check_db_connection()
    storage_healthy = get_blob_store().root.is_dir()

    return HealthResponse(
        status="healthy" if db_healthy and storage_healthy else "degraded",
        version=__version__,
        database=db_healthy,
        storage=storage_healthy,
    )


@app.get("/", tags=["Root"])
async def root() -> dict[str, str]:
    """Root endpoint with basic info."""
    return {
        "name": "capstore",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "capstore.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
