"""Pure parsers for the HTML/JSON fragments the portal returns."""
import re
from datetime import date

from bonus.models.challenge import CandidateAnswer

_GUILD_RE = re.compile(r"guild\.php\?g?sn=(\d+)")

# Marker letter A (ASCII or full-width, any case), one separator char, option 1-4.
_ANSWER_RE = re.compile(r"[aAａＡ]\s*.\s*([1-4１-４])")
_FULLWIDTH_DIGITS = str.maketrans("１２３４", "1234")


def extract_guild_id(html: str) -> str | None:
    m = _GUILD_RE.search(html or "")
    return m.group(1) if m else None


def date_formats(day: date) -> list[str]:
    """M/D, M-D, MM/DD, MM-DD, in that order."""
    m, d = day.month, day.day
    return [
        f"{m}/{d}",
        f"{m}-{d}",
        f"{m:02d}/{d:02d}",
        f"{m:02d}-{d:02d}",
    ]


def title_matches(title: str, day: date) -> bool:
    # Digit lookarounds keep 3/1 from matching "3/19".
    for fmt in date_formats(day):
        if re.search(rf"(?<!\d){re.escape(fmt)}(?!\d)", title):
            return True
    return False


def find_answer_article(articles: list[dict], day: date) -> dict | None:
    """First article whose title carries `day` in any supported format."""
    for article in articles:
        title = article.get("title") or ""
        if isinstance(title, str) and title_matches(title, day):
            return article
    return None


def extract_answer(html: str) -> CandidateAnswer | None:
    m = _ANSWER_RE.search(html or "")
    if not m:
        return None
    return CandidateAnswer(option=m.group(1).translate(_FULLWIDTH_DIGITS))
