"""Stage 2: main-site daily sign-in (CSRF token, then signed POST)."""
import logging

from bonus.models.challenge import Stage
from bonus.models.report import StageOutcome
from bonus.protocol import rules
from bonus.services.pacer import Pacer
from bonus.services.portal import PortalClient, parse_json

logger = logging.getLogger(__name__)

CSRF_URL = "https://www.gamer.com.tw/ajax/get_csrf_token.php"
SIGN_URL = "https://www.gamer.com.tw/ajax/signin.php"
_REFERER = {"Referer": "https://www.gamer.com.tw/"}


def _consecutive_days(value) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.isdigit():
        return int(value)
    return None


def _error_message(error) -> str:
    if isinstance(error, dict):
        return str(error.get("message") or "")
    if isinstance(error, str):
        return error
    return ""


def classify(data: dict) -> StageOutcome:
    payload = data.get("data")
    days = _consecutive_days(payload.get("days")) if isinstance(payload, dict) else None
    if days is not None:
        return StageOutcome.success(Stage.SITE_SIGN, f"Site sign-in succeeded, {days} consecutive days")

    message = _error_message(data.get("error"))
    if message:
        if rules.classify(message, rules.SITE_SIGN_RULES) == rules.ALREADY:
            return StageOutcome.already_done(Stage.SITE_SIGN, "Site already signed in today")
        return StageOutcome.failure(Stage.SITE_SIGN, f"Site sign-in failed: {message}")
    return StageOutcome.failure(Stage.SITE_SIGN, "Site sign-in failed: unknown error")


async def run(client: PortalClient, pacer: Pacer) -> StageOutcome:
    """Never raises; transport and parse errors become a Failure outcome."""
    try:
        return await _sign(client, pacer)
    except Exception as exc:
        logger.warning("Site sign-in raised: %r", exc)
        return StageOutcome.failure(Stage.SITE_SIGN, f"Site sign-in failed: {exc}")


async def _sign(client: PortalClient, pacer: Pacer) -> StageOutcome:
    await pacer.wait(800)
    token_resp = await client.get(CSRF_URL, headers=_REFERER)
    if not token_resp.is_success:
        return StageOutcome.failure(Stage.SITE_SIGN, "Site sign-in failed: cannot obtain sign-in token")
    token = token_resp.text.strip()
    if not token:
        return StageOutcome.failure(Stage.SITE_SIGN, "Site sign-in failed: sign-in token is empty")

    await pacer.wait(500)
    sign_resp = await client.post(SIGN_URL, headers=_REFERER, data={"action": "1", "token": token})
    return classify(parse_json(sign_resp))
