"""Orchestrates login and the three daily stages into a RunReport."""
import asyncio
import logging
from datetime import date

from bonus.config import Settings
from bonus.models.challenge import Stage
from bonus.models.report import RunReport, StageOutcome
from bonus.protocol import stage1_login, stage2_site_sign, stage3_guild_sign, stage4_anime_quiz
from bonus.services.pacer import Pacer
from bonus.services.portal import PortalClient

logger = logging.getLogger(__name__)

_STAGE_LABELS = {
    Stage.SITE_SIGN: "Site sign-in",
    Stage.GUILD_SIGN: "Guild sign-in",
    Stage.ANIME_QUIZ: "Anime quiz",
}


async def execute(
    settings: Settings,
    client: PortalClient,
    pacer: Pacer,
    today: date,
    sleep=asyncio.sleep,
) -> RunReport:
    """
    Log in, then run site sign-in, guild sign-in and the anime quiz in order.
    Raises stage1_login.LoginError if login fails; every other stage failure
    is recorded in the report and the run continues.
    """
    await stage1_login.login(
        client,
        settings.credential,
        max_attempts=settings.login_retries,
        sleep=sleep,
    )

    outcomes: list[StageOutcome] = []

    async def _stage(stage: Stage, coro_fn) -> None:
        if not client.session:
            outcome = StageOutcome.failure(stage, f"{_STAGE_LABELS[stage]} failed: not authenticated")
        else:
            outcome = await coro_fn()
        logger.log(
            logging.WARNING if outcome.is_failure else logging.INFO,
            "%s -> %s: %s",
            stage.value,
            outcome.outcome.value,
            outcome.detail,
        )
        outcomes.append(outcome)

    await _stage(Stage.SITE_SIGN, lambda: stage2_site_sign.run(client, pacer))

    if settings.need_sign_guild:
        await _stage(Stage.GUILD_SIGN, lambda: stage3_guild_sign.run(client, pacer))

    if settings.need_answer:
        await _stage(Stage.ANIME_QUIZ, lambda: stage4_anime_quiz.run(client, pacer, today))

    return RunReport(success=True, outcomes=tuple(outcomes))
