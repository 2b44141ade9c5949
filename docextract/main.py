"""FastAPI application for the document extraction service."""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from docextract.config import get_settings
from docextract.middleware.logging import RequestLoggingMiddleware, configure_logging
from docextract.middleware.rate_limit import get_limiter, rate_limit_exceeded_handler
from docextract.middleware.request_id import RequestIDMiddleware
from docextract.routers import documents, extraction

logger = logging.getLogger(__name__)

VERSION = "1.0.0"
COMMIT_HASH = "development"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Validate configuration on startup."""
    # Raises ValidationError if required env vars are missing
    settings = get_settings()
    configure_logging(settings.log_level)

    logger.info("Starting Document Extraction API v%s", VERSION)
    logger.info("Model: %s", settings.model_name)
    logger.info("Database: %s", settings.database_path)

    yield

    logger.info("Shutting down Document Extraction API")


app = FastAPI(
    title="Document Extraction API",
    description="Invoice, contract and receipt field extraction (OpenDataLoader + Gemini)",
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# slowapi reads the limiter from app state
app.state.limiter = get_limiter()
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Last added runs first: request id is assigned before logging reads it
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Report whether the service's collaborators are usable.

    Status Codes:
        200: All checks pass
        503: Configuration invalid or PDF converter missing
    """
    checks: Dict[str, str] = {}
    healthy = True

    try:
        from opendataloader_pdf import convert  # noqa: F401
        checks["opendataloader"] = "healthy"
    except ImportError as e:
        checks["opendataloader"] = f"unhealthy: {e}"
        healthy = False

    try:
        get_settings()
        checks["configuration"] = "healthy"
    except ValueError as e:
        checks["configuration"] = f"unhealthy: {e}"
        healthy = False

    body: Dict[str, Any] = {
        "status": "healthy" if healthy else "unhealthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "services": checks,
    }
    return JSONResponse(content=body, status_code=200 if healthy else 503)


@app.get("/version")
async def version_info() -> Dict[str, str]:
    """Version number and commit hash of the API."""
    return {
        "version": VERSION,
        "commit_hash": COMMIT_HASH,
    }


app.include_router(extraction.router)
app.include_router(documents.router)
