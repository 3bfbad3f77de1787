"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Lifespan manager — logging setup, table creation, admin seed, and the
     one-time account import, all before the first request is served
  2. Correlation-ID / request-logging middleware
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — maps domain errors to HTTP responses
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn app.main:app --reload

The --reload flag watches for file changes and restarts automatically,
which is ideal for development but should not be used in production.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.database import engine, AsyncSessionLocal, init_schema
from app.exceptions import internal_error_response, register_exception_handlers
from app.logging_config import bind_correlation_id, configure_logging
from app.routers import accounts, admin, auth
from app.services import startup

logger = logging.getLogger(__name__)

CORRELATION_HEADER = "X-Correlation-ID"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager (replaces deprecated @app.on_event).

    Startup:
      1. Configure logging
      2. Create all database tables if they don't exist
      3. Seed the admin user (only if missing)
      4. Run the guarded account import (never fails startup)

    Shutdown:
      Disposes of the database engine, closing all connections cleanly.
    """
    # --- Startup ---
    configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    await init_schema(engine)

    async with AsyncSessionLocal() as db:
        await startup.seed_admin(
            db,
            username=settings.ADMIN_USERNAME,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
        )

    if settings.IMPORT_ON_STARTUP:
        await startup.run_startup_import(
            AsyncSessionLocal,
            settings.ACCOUNTS_FILE,
            batch_size=settings.IMPORT_BATCH_SIZE,
        )
    yield
    # --- Shutdown ---
    await engine.dispose()


# Create the FastAPI application instance
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Account record lookup and description updates with optimistic locking",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


@app.middleware("http")
async def correlation_id_middleware(request: Request, call_next):
    """
    Bind a correlation ID for the request and log its outcome.

    A client-supplied X-Correlation-ID is reused so calls can be traced
    across services; otherwise a new one is generated. The ID is echoed
    back in the response header, on 500 responses too.
    """
    with bind_correlation_id(request.headers.get(CORRELATION_HEADER)) as correlation_id:
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            # Handled here, while the request's correlation ID is still bound
            logger.exception("Unexpected error on %s %s", request.method, request.url.path)
            response = internal_error_response()
        elapsed_ms = (time.perf_counter() - start) * 1000
        response.headers[CORRELATION_HEADER] = correlation_id
        logger.info(
            "%s %s -> %d (%.1f ms)",
            request.method, request.url.path, response.status_code, elapsed_ms,
        )
        return response


# CORS: Allow specified frontend origins to make requests.
# In production, lock this down to your actual frontend domain(s).
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------

register_exception_handlers(app)

# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

app.include_router(auth.router, prefix="/auth", tags=["Auth"])
app.include_router(accounts.router, prefix="/accounts", tags=["Accounts"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for deployment probes (Kubernetes, Docker, etc.).

    Returns a simple JSON response indicating the service is running.
    """
    return {"status": "ok", "version": settings.APP_VERSION}
