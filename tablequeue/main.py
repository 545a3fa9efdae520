from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tablequeue.config import get_settings
from tablequeue.database import close_db, init_db

# Import all models to register them with Base BEFORE init_db
# This ensures create_all() sees all tables
from tablequeue.models import (  # noqa: F401
    Restaurant,
    TableType,
    WaitlistEntry,
    DailyAnalytics,
    HourlyAnalytics,
    TableAnalytics,
)

settings = get_settings()
LOGGER = logging.getLogger("tablequeue")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    # create_all() is idempotent; migrations own the schema in production
    try:
        await init_db()
        LOGGER.info("Database initialized")
    except Exception as e:
        LOGGER.error("Database initialization failed: %s", e)
        raise

    yield

    await close_db()


app = FastAPI(
    title="Waitlist Queue & Table Allocation Engine",
    description="Restaurant waitlist queue, remote check-in and table allocation API",
    version="1.0.0",
    lifespan=lifespan,
)

# Configure CORS (needed for browser preflight requests)
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )
else:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.get("/healthz")
async def health_check() -> dict:
    """Health check endpoint."""
    return {"status": "ok", "service": "tablequeue"}


@app.get("/")
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": "Waitlist Queue & Table Allocation Engine",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/healthz",
    }


# Include API routers
from tablequeue.api import capacity_router, waitlist_router  # noqa: E402

app.include_router(waitlist_router)
app.include_router(capacity_router)
