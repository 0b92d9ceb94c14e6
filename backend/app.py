"""
FastAPI application -- CRM entity edit lock API server.

Run locally:
    uvicorn backend.app:app --reload --port 8000
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

import config_env
from backend.database import init_db
from backend.locks import InvalidArgument, get_lock_manager
from backend.routes import admin, locks

logging.basicConfig(
    level=config_env.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Initialise database schema
    await init_db()

    sweeper = None
    if config_env.ENABLE_LOCK_SWEEP:
        from backend.sweeper import get_lock_sweeper

        sweeper = get_lock_sweeper()
        sweeper.start(interval_minutes=config_env.LOCK_SWEEP_INTERVAL_MINUTES)

    logger.info("Edit lock timeout: %d minute(s)", config_env.LOCK_TIMEOUT_MINUTES)

    yield

    # Shutdown
    if sweeper and sweeper.is_running:
        sweeper.stop()


app = FastAPI(
    title="CRM Edit Lock API",
    version="1.0.0",
    description="Advisory, heartbeat-renewed edit locks for shared CRM records",
    lifespan=lifespan,
)

app.include_router(locks.router)
app.include_router(admin.router)


@app.exception_handler(InvalidArgument)
async def invalid_argument_handler(request: Request, exc: InvalidArgument):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "Lock storage error on %s %s", request.method, request.url.path, exc_info=exc
    )
    return JSONResponse(status_code=500, content={"detail": "Lock storage error"})


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "lock_timeout_minutes": get_lock_manager().timeout_minutes,
    }
