from __future__ import annotations
import logging
from contextlib import asynccontextmanager
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from .core.config import get_settings
from .core.errors import PresenceError
from .core.log import configure_logging
from .core.nats import nats_close, nats_connect
from .core.redis import close_redis, ping_redis
from .repositories import build_repository
from .routers import activities, checkins, events, members
from .services.rollover import deactivate_expired_events

settings = get_settings()
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.log_level)
    repo = build_repository(settings)
    await repo.init()
    app.state.repository = repo
    logger.info(f"Storage backend: {settings.storage_backend}")

    # best-effort connect to infra; service still runs if these fail
    if settings.enable_nats_events:
        try:
            await nats_connect()
        except Exception as e:
            logger.warning(f"NATS unavailable at startup: {e}")
    if settings.rl_enabled:
        await ping_redis()

    scheduler = AsyncIOScheduler()
    if settings.rollover_job_enabled:
        async def sweep():
            try:
                await deactivate_expired_events(repo)
            except Exception:
                logger.exception("Scheduled rollover failed")
        scheduler.add_job(sweep, "interval", seconds=settings.rollover_interval_seconds)
        scheduler.start()
    yield
    if scheduler.running:
        scheduler.shutdown(wait=False)
    if settings.enable_nats_events:
        await nats_close()
    if settings.rl_enabled:
        await close_redis()
    await repo.close()

app = FastAPI(title="station-presence", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(PresenceError)
async def presence_error_handler(request: Request, exc: PresenceError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

app.include_router(activities.router)
app.include_router(members.router)
app.include_router(checkins.router)
app.include_router(events.router)

@app.get("/health")
async def health():
    return {"status": "ok", "service": "station-presence"}

Instrumentator().instrument(app).expose(app)
