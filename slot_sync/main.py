"""
FastAPI app entrypoint.

Serves reconciled inventory read-only and runs the three sync cadences in-process.
"""
import logging
import os
from contextlib import asynccontextmanager
from datetime import timezone
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

# Load .env from the project root before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from slot_sync.api.routes import experience
from slot_sync.config import settings
from slot_sync.core.constants import (
    INVENTORY_DAILY_JOB_ID,
    INVENTORY_NEAR_TERM_JOB_ID,
    INVENTORY_TODAY_JOB_ID,
)
from slot_sync.db.session import SessionLocal
from slot_sync.scheduler.inventory_jobs import register_jobs
from slot_sync.services.sync import ensure_products

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_JOB_IDS = (INVENTORY_DAILY_JOB_ID, INVENTORY_NEAR_TERM_JOB_ID, INVENTORY_TODAY_JOB_ID)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db = SessionLocal()
    try:
        ensure_products(db, settings.product_ids)
    except Exception as e:
        # Merges create missing products lazily; a down DB at boot must not block the API
        logger.warning("ensure_products on startup failed: %s", e, exc_info=True)
        db.rollback()
    finally:
        db.close()

    scheduler = None
    if settings.scheduler_enabled:
        scheduler = BackgroundScheduler(timezone=settings.sync_timezone)
        register_jobs(scheduler)
        scheduler.start()
        logger.info("Inventory scheduler started for products %s", settings.product_ids)
    else:
        logger.info("Inventory scheduler disabled (SCHEDULER_ENABLED=false)")
    app.state.scheduler = scheduler
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Slot Sync", version="0.1.0", lifespan=lifespan)

# CORS: optional CORS_ORIGINS env (comma-separated)
_cors_origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(experience.router, prefix="/api/v1/experience", tags=["experience"])


def _next_runs(request: Request) -> dict[str, str | None]:
    """Next run time (UTC ISO) per cadence job; None when the scheduler is off."""
    scheduler = getattr(request.app.state, "scheduler", None)
    out: dict[str, str | None] = {}
    for job_id in _JOB_IDS:
        job = scheduler.get_job(job_id) if scheduler else None
        at = getattr(job, "next_run_time", None) if job else None
        out[job_id] = at.astimezone(timezone.utc).isoformat() if at else None
    return out


@app.get("/health")
def health(request: Request) -> dict:
    return {"status": "ok", "jobs": _next_runs(request)}
