"""
FastAPI app entrypoint.

Artist dispatch: proposal batches, deadline sweep, Monday.com webhook intake.
"""
import logging
import os
import threading
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from artist_dispatch.api.routes import artist_bookings, artists, backoffice, batches, proposals, push, webhooks
from artist_dispatch.config import settings
from artist_dispatch.core.constants import DEADLINE_SWEEP_INTERVAL_SECONDS, DEADLINE_SWEEP_JOB_ID
from artist_dispatch.scheduler.deadline_job import run_deadline_sweep_job

logging.basicConfig(
    level=getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

_scheduler = BackgroundScheduler()


@asynccontextmanager
async def lifespan(app: FastAPI):
    _scheduler.add_job(
        run_deadline_sweep_job,
        "interval",
        seconds=DEADLINE_SWEEP_INTERVAL_SECONDS,
        id=DEADLINE_SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    _scheduler.start()
    app.state.scheduler = _scheduler

    def startup_background():
        # Catch up on deadlines that passed while the process was down.
        try:
            run_deadline_sweep_job()
            logger.info("Deadline sweep tick on startup; next tick in %ss", DEADLINE_SWEEP_INTERVAL_SECONDS)
        except Exception as e:
            logger.warning("Deadline sweep on startup failed: %s", e, exc_info=True)

    if settings.run_sweep_on_startup:
        threading.Thread(target=startup_background, daemon=True).start()
    logger.info("Backend ready; deadline sweep every %ss", DEADLINE_SWEEP_INTERVAL_SECONDS)
    yield
    _scheduler.shutdown(wait=False)


app = FastAPI(title="Artist Dispatch", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS env (comma-separated) for the backoffice frontend
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

app.include_router(batches.router, tags=["batches"])
app.include_router(proposals.router, tags=["proposals"])
app.include_router(artists.router, tags=["artists"])
app.include_router(artist_bookings.router, tags=["artist-bookings"])
app.include_router(backoffice.router, tags=["backoffice"])
app.include_router(webhooks.router, tags=["webhooks"])
app.include_router(push.router, tags=["push"])


@app.get("/", include_in_schema=False)
def root():
    return {"message": "Artist Dispatch API", "docs": "/docs", "health": "/health"}


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
