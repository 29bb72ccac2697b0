"""
backend/scorehub/main.py

Purpose:
    FastAPI application bootstrap: middleware and router wiring, error
    mapping to ``{message}`` bodies, and the match scraper schedule.

Dependencies:
    - scorehub.database
    - scorehub.workers.match_scraper
"""

import logging
from contextlib import asynccontextmanager

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from bson.errors import InvalidId
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import (
    ConnectionFailure,
    DuplicateKeyError,
    OperationFailure,
    PyMongoError,
    ServerSelectionTimeoutError,
)
from starlette.exceptions import HTTPException as StarletteHTTPException

import scorehub.database as _db
from scorehub.config import settings
from scorehub.database import close_db, connect_db
from scorehub.middleware.logging import StructuredLoggingMiddleware, setup_logging
from scorehub.workers._state import get_synced_at
from scorehub.workers.match_scraper import STATE_KEY as SCRAPER_STATE_KEY, run_scrape_cycle

logger = logging.getLogger("scorehub")
scheduler = AsyncIOScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    await connect_db()

    if settings.SCRAPER_ENABLED:
        scheduler.add_job(
            run_scrape_cycle,
            "interval",
            minutes=settings.SCRAPER_INTERVAL_MINUTES,
            id="match_scraper",
            max_instances=1,
            coalesce=True,
        )
        scheduler.start()
        logger.info("Match scraper scheduled every %d minutes", settings.SCRAPER_INTERVAL_MINUTES)
    else:
        logger.info("Match scraper disabled via config")

    yield

    if scheduler.running:
        scheduler.shutdown(wait=False)
    await close_db()


app = FastAPI(
    title="ScoreHub",
    description="Football match data, simulated betting and score predictions",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Structured logging
app.add_middleware(StructuredLoggingMiddleware)

# Routers
from scorehub.routers.auth import router as auth_router
from scorehub.routers.betting import router as betting_router
from scorehub.routers.dashboard import router as dashboard_router
from scorehub.routers.football import router as football_router
from scorehub.routers.matches import router as matches_router
from scorehub.routers.preferences import router as preferences_router
from scorehub.routers.user import router as user_router

app.include_router(auth_router)
app.include_router(user_router)
app.include_router(betting_router)
app.include_router(matches_router)
app.include_router(preferences_router)
app.include_router(football_router)
app.include_router(dashboard_router)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(InvalidId)
async def invalid_object_id_handler(request: Request, exc: InvalidId):
    return JSONResponse(status_code=400, content={"message": "Invalid ID."})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Validation failures are client errors (400) with per-field messages."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc", ())
        field = ".".join(str(l) for l in loc[1:]) if len(loc) > 1 else str(loc[-1]) if loc else "unknown"
        errors.append({"field": field, "message": err.get("msg", "Invalid value.")})
    return JSONResponse(status_code=400, content={"message": "Validation error.", "errors": errors})


@app.exception_handler(DuplicateKeyError)
async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    return JSONResponse(status_code=409, content={"message": "Duplicate entry."})


@app.exception_handler(ServerSelectionTimeoutError)
async def db_timeout_handler(request: Request, exc: ServerSelectionTimeoutError):
    logger.error("Database timeout: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"message": "Service temporarily unavailable."})


@app.exception_handler(ConnectionFailure)
async def db_connection_handler(request: Request, exc: ConnectionFailure):
    logger.error("Database connection failure: %s %s", request.method, request.url.path)
    return JSONResponse(status_code=503, content={"message": "Service temporarily unavailable."})


@app.exception_handler(OperationFailure)
async def db_operation_handler(request: Request, exc: OperationFailure):
    logger.error("Database operation error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "An internal error occurred."})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all: log the real error, return a safe generic message."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "An internal error occurred."})


@app.get("/health")
async def health():
    """Health check -- verifies the DB connection and reports the last scrape."""
    try:
        result = await _db.db.command("ping")
        db_ok = result.get("ok") == 1.0
    except PyMongoError:
        db_ok = False

    last_scrape = None
    if db_ok:
        last_scrape = await get_synced_at(SCRAPER_STATE_KEY)

    return {
        "status": "healthy" if db_ok else "degraded",
        "db": "connected" if db_ok else "disconnected",
        "last_scrape": last_scrape.isoformat() if last_scrape else None,
    }
