"""
FastAPI application factory and entry point.

This module creates and configures the FastAPI application:
  1. Logging — stdlib logging at settings.LOG_LEVEL
  2. Lifespan manager — handles startup/shutdown (DB tables, provider clients)
  3. CORS middleware — allows frontend origins to make cross-origin requests
  4. Exception handlers — maps domain errors to HTTP responses
  5. Router registration — mounts all API endpoint groups

Running locally:
    uvicorn airtime_api.main:app --reload

The --reload flag watches for file changes and restarts automatically,
which is ideal for development but should not be used in production.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from airtime_api.config import settings
from airtime_api.database import engine, Base
from airtime_api.dependencies import close_providers
from airtime_api.exceptions import register_exception_handlers
from airtime_api.routers import (
    accounts,
    admin,
    airtime,
    auth,
    callbacks,
    conversions,
    notifications,
    payments,
    transactions,
)

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager (replaces deprecated @app.on_event).

    Startup:
      Creates all database tables if they don't exist. This is a convenience
      for development — in production, you'd use Alembic migrations exclusively
      so you have version-controlled, reversible schema changes.

    Shutdown:
      Closes the provider HTTP clients and disposes of the database engine.
    """
    # --- Startup ---
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # --- Shutdown ---
    await close_providers()
    await engine.dispose()


# Create the FastAPI application instance
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Airtime wallet API: M-Pesa deposits, airtime purchases and reconciliation",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

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
app.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
app.include_router(payments.router, prefix="/payments", tags=["Payments"])
app.include_router(airtime.router, prefix="/airtime", tags=["Airtime"])
app.include_router(conversions.router, prefix="/conversions", tags=["Conversions"])
app.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
app.include_router(callbacks.router, prefix="/callback", tags=["Callbacks"])
app.include_router(admin.router, prefix="/admin", tags=["Admin"])


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for deployment probes (Kubernetes, Docker, etc.).

    Returns a simple JSON response indicating the service is running.
    Load balancers and orchestrators use this to determine if the
    container should receive traffic.
    """
    return {"status": "ok", "version": settings.APP_VERSION}
