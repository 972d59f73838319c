"""
FastAPI application with lifespan, scheduled trigger, and REST routes.

Run with: uvicorn bonus.main:app --host 0.0.0.0 --port 8000
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bonus.api.routes import router
from bonus.config import settings
from bonus.database import close_db, get_db
from bonus.scheduler import run_forever

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Daily bonus service starting, initialising database")
    await get_db()
    scheduler_task = None
    if settings.schedule_enabled:
        logger.info(
            "Scheduled trigger enabled at %02d:%02d UTC",
            settings.schedule_hour_utc,
            settings.schedule_minute_utc,
        )
        scheduler_task = asyncio.create_task(run_forever(settings))
    yield
    if scheduler_task is not None:
        scheduler_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await scheduler_task
    logger.info("Daily bonus service shutting down, closing database")
    await close_db()


app = FastAPI(
    title="Bahamut daily bonus",
    description="Logs in, signs in to the site and guild, and answers the daily anime quiz",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
