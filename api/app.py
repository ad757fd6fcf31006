"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application for the
Biometric Access demo backend.

The application provides:
- Account endpoints: register, login, profile
- Biometric endpoints: enrollment completion, login-time verification
- Health check endpoint

Account and biometric routes are served both at the root and under
/api/auth, the base path the browser frontend uses.

Usage:
    # From project root:
    uvicorn api.app:app --host 0.0.0.0 --port 3001 --reload

    # Or run directly:
    python -m api.app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import accounts_router, biometric_router
from api.schemas import HealthResponse
from core.config import get_config, get_logging_config, get_server_config
from core.user_store import get_user_store


# Configure logging
_logging_config = get_logging_config()
logging.basicConfig(
    level=_logging_config.get("level", "INFO"),
    format=_logging_config.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
)
logger = logging.getLogger(__name__)

API_TITLE = "Biometric Access API"
API_VERSION = "0.1.0"
AUTH_PREFIX = "/api/auth"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup:
    - Open the account store (creates the SQLite schema on first run)

    Runs on shutdown:
    - Close the account store
    """
    logger.info("=" * 60)
    logger.info(f"Starting {API_TITLE}")
    logger.info("=" * 60)

    store = get_user_store()
    logger.info(f"User store ready: {store.count()} accounts registered")

    logger.info("API startup complete!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down API...")
    store.close()
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=API_TITLE,
    description="""
Backend for a demo web application that gates access behind email/password
accounts plus a client-side biometric widget.

## Features
- **Accounts**: register, log in, read profile (bearer token)
- **Enrollment**: mark an account as biometrically enrolled
- **Verification**: accept a login-time biometric claim

The backend never sees biometric data. Verification trusts the client's
report that its camera stream passed the liveness heuristic.
    """,
    version=API_VERSION,
    lifespan=lifespan,
)

# Configure CORS for frontend access
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().get("api", {}).get("cors_origins", ["http://localhost:5173"]),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
for _router in (accounts_router, biometric_router):
    app.include_router(_router)
    app.include_router(_router, prefix=AUTH_PREFIX, include_in_schema=False)


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are client errors: 400, not 422."""
    logger.info(f"Invalid request body for {request.url.path}: {exc.errors()}")
    return JSONResponse(status_code=400, content={"detail": "Invalid request body"})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    """Log unexpected errors server-side and return a generic 500."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ============================================================
# Health Check Endpoint
# ============================================================

@app.get("/health", response_model=HealthResponse, tags=["system"])
async def health_check():
    """Health check for the API process."""
    return HealthResponse(status="ok", message="Biometric Access Backend API")


@app.get("/", tags=["system"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": API_TITLE,
        "version": API_VERSION,
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    server = get_server_config()
    logger.info(f"Starting server on {server['host']}:{server['port']}")
    uvicorn.run(
        "api.app:app",
        host=server["host"],
        port=server["port"],
        reload=True,
        log_level="info",
    )
