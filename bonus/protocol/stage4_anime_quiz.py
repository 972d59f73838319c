"""
Stage 4: daily anime quiz.

Fetch today's question token, find the answer article the blackXblue home
publishes for today's date, scrape the option number out of it and submit.
Every step short-circuits to a Failure outcome; nothing propagates.
"""
import logging
import time
from datetime import date

from bonus.models.challenge import CandidateAnswer, Challenge, Stage
from bonus.models.report import StageOutcome
from bonus.protocol import rules
from bonus.services.pacer import Pacer
from bonus.services.parsing import extract_answer, find_answer_article
from bonus.services.portal import ANIME_HEADERS, PortalClient, is_html, is_json, parse_json

logger = logging.getLogger(__name__)

HOME_URL = "https://www.gamer.com.tw/"
QUESTION_URL = "https://ani.gamer.com.tw/ajax/animeGetQuestion.php"
SUBMIT_URL = "https://ani.gamer.com.tw/ajax/animeAnsQuestion.php"
ANSWER_AUTHOR = "blackXblue"
CREATION_LIST_URL = f"https://api.gamer.com.tw/home/v2/creation_list.php?owner={ANSWER_AUTHOR}"
CREATION_DETAIL_URL = "https://api.gamer.com.tw/mobile_app/bahamut/v1/home_creation_detail_webview.php"
_HOME_REFERER = {"Referer": "https://home.gamer.com.tw/"}

_STAGE = Stage.ANIME_QUIZ


def _fail(reason: str) -> StageOutcome:
    return StageOutcome.failure(_STAGE, f"Anime quiz failed: {reason}")


def _now_ms() -> int:
    return int(time.time() * 1000)


def classify_question(data: dict) -> Challenge | StageOutcome:
    if data.get("token"):
        return Challenge.from_payload(data)

    message = str(data.get("msg") or "")
    if data.get("error") == 1 and data.get("nologin") == 1:
        return _fail("anime service requires login")
    verdict = rules.classify(message, rules.QUIZ_RULES)
    if verdict == rules.ALREADY:
        return StageOutcome.already_done(_STAGE, "Anime quiz already answered today")
    if verdict == rules.LOGIN_REQUIRED:
        return _fail("anime service requires login")
    return _fail("no question today" + (f" ({message})" if message else ""))


def classify_submission(data: dict) -> StageOutcome:
    if data.get("ok") == 1:
        gift = data.get("gift")
        return StageOutcome.success(_STAGE, "Anime quiz answered" + (f", {gift}" if gift else ""))
    return _fail(str(data.get("msg") or "unknown error"))


async def fetch_challenge(client: PortalClient, pacer: Pacer) -> Challenge | StageOutcome:
    await pacer.wait(700)
    # The web home may hand out BAHAENUR; keep whatever cookies it sets.
    await client.get(HOME_URL, follow_redirects=False)

    await pacer.wait(300)
    resp = await client.get(f"{QUESTION_URL}?t={_now_ms()}", profile=ANIME_HEADERS)
    try:
        data = parse_json(resp)
    except ValueError:
        return _fail("anime service requires valid authentication")
    return classify_question(data)


async def lookup_answer_article(client: PortalClient, pacer: Pacer, today: date) -> dict | StageOutcome:
    await pacer.wait(500)
    resp = await client.get(CREATION_LIST_URL, headers=_HOME_REFERER)
    if not is_json(resp):
        return _fail("answer article list is not JSON")
    articles = (parse_json(resp).get("data") or {}).get("list") or []
    article = find_answer_article(articles, today)
    if article is None:
        return _fail(f"no answer article found for {today.month}/{today.day}")
    logger.info("Answer article %s: %s", article.get("csn"), article.get("title"))
    return article


async def fetch_answer(client: PortalClient, pacer: Pacer, article: dict) -> CandidateAnswer | StageOutcome:
    await pacer.wait(500)
    sn = str(article.get("csn") or "")
    resp = await client.get(f"{CREATION_DETAIL_URL}?sn={sn}", headers=_HOME_REFERER)
    if not is_html(resp):
        return _fail("answer article returned unexpected format")
    answer = extract_answer(resp.text)
    if answer is None:
        return _fail("cannot parse answer")
    return CandidateAnswer(option=answer.option, article_sn=sn)


async def submit(client: PortalClient, pacer: Pacer, challenge: Challenge, answer: CandidateAnswer) -> StageOutcome:
    await pacer.wait(600)
    challenge.mark_submitted()
    resp = await client.post(
        SUBMIT_URL,
        profile=ANIME_HEADERS,
        data={"token": challenge.token, "ans": answer.option, "t": str(_now_ms())},
    )
    if not is_json(resp):
        return _fail("submit returned unexpected format")
    return classify_submission(parse_json(resp))


async def run(client: PortalClient, pacer: Pacer, today: date | None = None) -> StageOutcome:
    try:
        return await _answer(client, pacer, today or date.today())
    except Exception as exc:
        logger.warning("Anime quiz raised: %r", exc)
        return _fail(str(exc) or exc.__class__.__name__)


async def _answer(client: PortalClient, pacer: Pacer, today: date) -> StageOutcome:
    challenge = await fetch_challenge(client, pacer)
    if isinstance(challenge, StageOutcome):
        return challenge

    article = await lookup_answer_article(client, pacer, today)
    if isinstance(article, StageOutcome):
        return article

    answer = await fetch_answer(client, pacer, article)
    if isinstance(answer, StageOutcome):
        return answer

    logger.info("Submitting option %s from article %s", answer.option, answer.article_sn)
    return await submit(client, pacer, challenge, answer)
