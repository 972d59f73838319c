"""Stage 1: login with bounded retries and captcha-placeholder resubmission."""
import asyncio
import logging

import httpx

from bonus.models.session import Credential
from bonus.protocol import rules
from bonus.services.portal import PortalClient, parse_json
from bonus.services.totp import generate_code

logger = logging.getLogger(__name__)

LOGIN_URL = "https://api.gamer.com.tw/mobile_app/user/v3/do_login.php"

# Throwaway captcha value; the portal accepts it most of the time.
_VCODE = "6666"
_COOLDOWN_S = 1.0


class LoginError(Exception):
    """Unrecoverable login failure. Aborts the run."""


class AccountNotFound(LoginError):
    pass


class InvalidCredentials(LoginError):
    pass


class LoginExhausted(LoginError):
    pass


def build_login_form(credential: Credential, at: float | None = None) -> dict:
    form = {"uid": credential.uid, "passwd": credential.password, "vcode": _VCODE}
    if credential.totp_seed:
        form["twoStepAuth"] = generate_code(credential.totp_seed, at)
    return form


async def login(
    client: PortalClient,
    credential: Credential,
    max_attempts: int = 3,
    sleep=asyncio.sleep,
) -> dict:
    """
    Log in, absorbing cookies from every attempt into client.session.
    Returns the success payload; raises a LoginError subclass otherwise.
    """
    last_message = ""
    for attempt in range(1, max_attempts + 1):
        if attempt > 1:
            await sleep(_COOLDOWN_S)

        try:
            resp = await client.post(
                LOGIN_URL,
                data=build_login_form(credential),
                cookie=f"ckAPP_VCODE={_VCODE}",
            )
            data = parse_json(resp)
        except (httpx.HTTPError, ValueError) as exc:
            last_message = str(exc)
            logger.warning("Login attempt %d/%d failed: %s", attempt, max_attempts, exc)
            continue

        if data.get("success"):
            logger.info("Login succeeded on attempt %d for uid=%s", attempt, credential.uid)
            return data

        last_message = str(data.get("message") or "")
        verdict = rules.classify(last_message, rules.LOGIN_RULES)
        if verdict == rules.ACCOUNT_NOT_FOUND:
            raise AccountNotFound(f"account does not exist: {last_message}")
        if verdict == rules.BAD_CREDENTIALS:
            raise InvalidCredentials(f"wrong account or password: {last_message}")
        logger.warning(
            "Login attempt %d/%d rejected (%s)%s",
            attempt,
            max_attempts,
            last_message or "no message",
            ", retrying captcha" if verdict == rules.RETRY else "",
        )

    raise LoginExhausted(
        f"login failed after {max_attempts} attempts" + (f": {last_message}" if last_message else "")
    )
