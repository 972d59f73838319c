"""Time-based trigger: one run per day at SCHEDULE_HOUR_UTC:SCHEDULE_MINUTE_UTC."""
import asyncio
import logging
from datetime import datetime, timedelta, timezone

from bonus.config import MissingCredentials, Settings
from bonus.jobs import run_daily

logger = logging.getLogger(__name__)


def seconds_until_next(now: datetime, hour: int, minute: int) -> float:
    """Seconds from `now` (aware) to the next hour:minute UTC, always > 0."""
    now = now.astimezone(timezone.utc)
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


async def run_forever(settings: Settings, sleep=asyncio.sleep) -> None:
    while True:
        delay = seconds_until_next(
            datetime.now(timezone.utc), settings.schedule_hour_utc, settings.schedule_minute_utc
        )
        logger.info("Next scheduled run in %.0f s", delay)
        await sleep(delay)
        try:
            report = await run_daily(settings)
            logger.info("Scheduled run finished success=%s", report.success)
        except MissingCredentials as exc:
            logger.error("Scheduled run skipped: %s", exc)
        except Exception as exc:
            logger.exception("Scheduled run crashed: %s", exc)
