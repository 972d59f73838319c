"""The run both triggers call: dedupe, execute, persist, notify."""
import asyncio
import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

import httpx

from bonus import database
from bonus.config import MissingCredentials, Settings
from bonus.models.report import RunReport
from bonus.models.session import Session
from bonus.protocol import runner
from bonus.protocol.stage1_login import LoginError
from bonus.services.notify import TelegramNotifier
from bonus.services.pacer import Pacer
from bonus.services.portal import PortalClient

logger = logging.getLogger(__name__)

TITLE_OK = "Bahamut daily bonus complete"
TITLE_FAILED = "Bahamut daily bonus failed"


def local_today(settings: Settings) -> date:
    return datetime.now(ZoneInfo(settings.timezone)).date()


async def run_daily(
    settings: Settings,
    *,
    force: bool = False,
    http: httpx.AsyncClient | None = None,
    notifier: TelegramNotifier | None = None,
    pacer: Pacer | None = None,
    today: date | None = None,
    sleep=asyncio.sleep,
) -> RunReport:
    """
    Run once for `today`. A stored successful report for the same day is
    returned as-is unless `force` is set. Login failures come back as a
    RunReport with success=False; MissingCredentials is raised before any
    remote call.
    """
    if not settings.has_credentials:
        raise MissingCredentials("BAHAMUT_UID and BAHAMUT_PWD must be set")

    today = today or local_today(settings)
    if not force:
        previous = await _load_previous(today)
        if previous is not None and previous.success:
            logger.info("Run for %s already completed at %s, skipping", today, previous.timestamp)
            return previous

    notifier = notifier or TelegramNotifier(settings.telegram_bot_token, settings.telegram_chat_id)
    pacer = pacer or Pacer(enabled=settings.use_smart_delay, sleep=sleep)

    if http is not None:
        report = await _execute(settings, http, pacer, today, sleep)
    else:
        async with httpx.AsyncClient(timeout=settings.http_timeout_s) as owned:
            report = await _execute(settings, owned, pacer, today, sleep)

    try:
        await database.save_status(today, report)
    except Exception as exc:
        logger.warning("Failed to persist run status for %s: %s", today, exc)

    await notifier.send(TITLE_OK if report.success else TITLE_FAILED, report.body)
    return report


async def _execute(settings: Settings, http: httpx.AsyncClient, pacer: Pacer, today: date, sleep) -> RunReport:
    client = PortalClient(http, Session())
    try:
        report = await runner.execute(settings, client, pacer, today, sleep=sleep)
    except LoginError as exc:
        logger.error("Run aborted, login failed: %s", exc)
        return RunReport(success=False, error=str(exc))
    logger.info("Run for %s finished with %d stage results", today, len(report.outcomes))
    return report


async def _load_previous(today: date) -> RunReport | None:
    try:
        return await database.load_status(today)
    except Exception as exc:
        logger.warning("Could not read stored status for %s: %s", today, exc)
        return None
