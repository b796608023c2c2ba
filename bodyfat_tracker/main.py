"""
Body Fat Tracker: Main Application Entry Point
==================================================
This is the FastAPI application. It:
  1. Creates the FastAPI app instance with metadata
  2. Registers all API routers
  3. Sets up the database lifecycle (create tables, load the record store)
  4. Configures CORS middleware for frontend integration
  5. Provides a health check endpoint

To run locally:
  uvicorn bodyfat_tracker.main:app --reload --host 0.0.0.0 --port 8000
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from bodyfat_tracker.core.config import settings
from bodyfat_tracker.core.database import AsyncSessionLocal, Base, async_engine
from bodyfat_tracker.routers import history, measurements, profile, weights
from bodyfat_tracker.services.record_store import RecordStore

# Configure logging so we can see what's happening in the console
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


# ============================================================
# APPLICATION LIFESPAN (Startup / Shutdown)
# ============================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    On STARTUP:
      - Creates all database tables if they don't exist (idempotent).
      - Builds the RecordStore and loads both record collections, so
        observers start from what is already stored.

    On SHUTDOWN:
      - Disposes the database engine (closes all connections).
    """
    logger.info(f"Starting {settings.APP_NAME} {settings.APP_VERSION}...")

    async with async_engine.begin() as conn:
        # Import models to ensure they're registered with Base.metadata
        from bodyfat_tracker import models  # noqa: F401

        await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables created/verified successfully")

    store = RecordStore(AsyncSessionLocal)
    await store.refresh()
    app.state.store = store
    logger.info(
        f"Loaded {len(store.compositions)} measurements and {len(store.weights)} weight entries"
    )

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    await async_engine.dispose()
    logger.info("Database connections closed")


# ============================================================
# CREATE THE FASTAPI APPLICATION
# ============================================================
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=(
        "Backend API for the Body Fat Tracker. "
        "Estimates body fat from 3-site and 7-site skinfold measurements, "
        "stores measurements and weight entries, and serves a unified history."
    ),
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# ============================================================
# CORS MIDDLEWARE
# ============================================================
# Allow all origins during development. In production, restrict to your frontend URL.
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================
# REGISTER ROUTERS
# ============================================================
app.include_router(measurements.router)  # /measurements/*
app.include_router(weights.router)       # /weights/*
app.include_router(history.router)       # /history/*
app.include_router(profile.router)       # /profile/*


# ============================================================
# ROOT / HEALTH CHECK ENDPOINT
# ============================================================
@app.get("/", tags=["Health"])
async def root():
    """Returns basic app info to confirm the API is running."""
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "healthy",
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for container health probes."""
    return {"status": "ok"}
