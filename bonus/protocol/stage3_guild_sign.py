"""Stage 3: guild sign-in. Accounts without a guild are NotAMember, not a failure."""
import logging

from bonus.models.challenge import Stage
from bonus.models.report import StageOutcome
from bonus.protocol import rules
from bonus.services.pacer import Pacer
from bonus.services.parsing import extract_guild_id
from bonus.services.portal import PortalClient, parse_json

logger = logging.getLogger(__name__)

TOPBAR_URL = "https://api.gamer.com.tw/ajax/common/topBar.php?type=forum"
GUILD_SIGN_URL = "https://guild.gamer.com.tw/ajax/guildSign.php"


def classify(data: dict) -> StageOutcome:
    message = str(data.get("msg") or "")
    if data.get("ok") == 1:
        return StageOutcome.success(Stage.GUILD_SIGN, "Guild sign-in succeeded")
    if rules.classify(message, rules.GUILD_SIGN_RULES) == rules.ALREADY:
        return StageOutcome.already_done(Stage.GUILD_SIGN, "Guild already signed in today")
    if data.get("error") == 1 and message:
        return StageOutcome.failure(Stage.GUILD_SIGN, f"Guild sign-in failed: {message}")
    return StageOutcome.failure(Stage.GUILD_SIGN, "Guild sign-in failed: unknown error")


async def run(client: PortalClient, pacer: Pacer) -> StageOutcome:
    try:
        return await _sign(client, pacer)
    except Exception as exc:
        logger.warning("Guild sign-in raised: %r", exc)
        return StageOutcome.failure(Stage.GUILD_SIGN, f"Guild sign-in failed: {exc}")


async def _sign(client: PortalClient, pacer: Pacer) -> StageOutcome:
    await pacer.wait(600)
    topbar = await client.get(TOPBAR_URL)
    guild_id = extract_guild_id(topbar.text)
    if guild_id is None:
        return StageOutcome.not_a_member(Stage.GUILD_SIGN, "Not a member of any guild")

    logger.info("Signing in to guild %s", guild_id)
    await pacer.wait(400)
    resp = await client.post(
        GUILD_SIGN_URL,
        headers={"Referer": f"https://guild.gamer.com.tw/{guild_id}"},
        data={"sn": guild_id},
    )
    return classify(parse_json(resp))
