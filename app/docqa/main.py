"""
FastAPI application for the document Q&A service.

Provides endpoints for:
- Uploading and managing PDF/DOCX documents
- Asking questions answered from a document's extracted text
"""

import logging

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__
from .database import init_db
from .models import HealthResponse
from .routers import documents
from .services.answer_service import (
    AnswerServiceError,
    UpstreamError,
    UpstreamMalformedError,
    UpstreamUnreachableError,
    get_answer_service,
)
from .services.extraction import get_extraction_service

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# httpx logs each request URL at INFO, and the Gemini key is a query parameter.
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    logger.info("Starting Document Q&A Service...")
    init_db()
    get_extraction_service()
    get_answer_service()
    logger.info("Services initialized successfully")
    yield
    logger.info("Shutting down Document Q&A Service...")


# Create FastAPI application
app = FastAPI(
    title="Document Q&A API",
    description="Upload PDF/DOCX documents and ask questions about their contents",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS for frontend development
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/", response_model=HealthResponse)
async def root() -> HealthResponse:
    """Root endpoint - health check."""
    return HealthResponse(
        status="healthy", message="Document Q&A API is running", version=__version__
    )


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint."""
    return HealthResponse(status="healthy", message="Service is healthy", version=__version__)


# =============================================================================
# Include Routers
# =============================================================================

app.include_router(documents.router)


# =============================================================================
# Exception Handlers
# =============================================================================


@app.exception_handler(UpstreamUnreachableError)
async def upstream_unreachable_handler(request: Request, exc: UpstreamUnreachableError):
    """Transport failures: ask the client to retry later."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


@app.exception_handler(UpstreamMalformedError)
async def upstream_malformed_handler(request: Request, exc: UpstreamMalformedError):
    """Unparseable provider responses."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"detail": str(exc), "error": exc.body},
    )


@app.exception_handler(UpstreamError)
async def upstream_error_handler(request: Request, exc: UpstreamError):
    """Forward the provider's own status and error payload."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": str(exc), "error": exc.body},
    )


@app.exception_handler(AnswerServiceError)
async def answer_service_error_handler(request: Request, exc: AnswerServiceError):
    """Any other answer service failure."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )
