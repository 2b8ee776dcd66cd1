"""
FastAPI app entrypoint.

Admission control and reservations for the scheduled shuttle. Routes are thin; domain errors
propagate to the handlers below (mapping in core/errors.py).
"""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DBAPIError, OperationalError

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from shuttle.api.routes import admin, availability, capacity, holds, rides
from shuttle.config import settings
from shuttle.core.constants import (
    HOLD_EXPIRY_INTERVAL_SECONDS,
    HOLD_EXPIRY_JOB_ID,
    LOAD_ANALYSIS_HOUR,
    LOAD_ANALYSIS_JOB_ID,
    MONTHLY_RESET_HOUR,
    MONTHLY_RESET_JOB_ID,
    SCHEDULE_EXPANSION_HOUR,
    SCHEDULE_EXPANSION_JOB_ID,
)
from shuttle.core.errors import (
    MSG_INTERNAL_ERROR,
    STATUS_INTERNAL_ERROR,
    ShuttleError,
    TransientStoreError,
    shuttle_error_response,
)
from shuttle.scheduler.hold_expiry_job import run_hold_expiry_job
from shuttle.scheduler.load_analysis_job import run_load_analysis_job
from shuttle.scheduler.monthly_reset_job import run_monthly_reset_job
from shuttle.scheduler.schedule_expansion_job import run_schedule_expansion_job

logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler(timezone=settings.app_timezone)


def _add_jobs(scheduler: BackgroundScheduler) -> None:
    scheduler.add_job(run_hold_expiry_job, "interval", seconds=HOLD_EXPIRY_INTERVAL_SECONDS, id=HOLD_EXPIRY_JOB_ID)
    scheduler.add_job(
        run_schedule_expansion_job,
        "cron",
        hour=SCHEDULE_EXPANSION_HOUR,
        minute=0,
        id=SCHEDULE_EXPANSION_JOB_ID,
    )
    scheduler.add_job(run_monthly_reset_job, "cron", hour=MONTHLY_RESET_HOUR, minute=10, id=MONTHLY_RESET_JOB_ID)
    scheduler.add_job(run_load_analysis_job, "cron", hour=LOAD_ANALYSIS_HOUR, minute=0, id=LOAD_ANALYSIS_JOB_ID)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.scheduler_enabled:
        _add_jobs(_scheduler)
        _scheduler.start()
        app.state.scheduler = _scheduler
        logger.info("Scheduler started: %s", ", ".join(job.id for job in _scheduler.get_jobs()))
    yield
    if _scheduler.running:
        _scheduler.shutdown(wait=False)


app = FastAPI(title="Shuttle Admission", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the admin frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_extra = os.getenv("CORS_ORIGINS", "")
if _cors_extra:
    _cors_origins.extend(o.strip() for o in _cors_extra.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ShuttleError)
async def handle_shuttle_error(request: Request, exc: ShuttleError):
    if isinstance(exc, TransientStoreError):
        logger.warning("%s %s: %s", request.method, request.url.path, exc)
    return shuttle_error_response(exc)


@app.exception_handler(OperationalError)
async def handle_operational_error(request: Request, exc: OperationalError):
    # Lock timeout / lost connection: retryable, never leak the SQL.
    logger.warning("%s %s: store unavailable: %s", request.method, request.url.path, exc.orig)
    return shuttle_error_response(TransientStoreError(str(exc.orig)))


@app.exception_handler(DBAPIError)
async def handle_dbapi_error(request: Request, exc: DBAPIError):
    logger.error("%s %s: database error: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=STATUS_INTERNAL_ERROR,
        content={"ok": False, "code": "internal_error", "message": MSG_INTERNAL_ERROR},
    )


app.include_router(availability.router, tags=["availability"])
app.include_router(holds.router, tags=["holds"])
app.include_router(rides.router, tags=["rides"])
app.include_router(capacity.router, tags=["capacity"])
app.include_router(admin.router, prefix="/admin", tags=["admin"])


@app.get("/", include_in_schema=False)
def root():
    """Root: point to API docs and health."""
    return {"message": "Shuttle admission API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
