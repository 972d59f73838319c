"""Marker-substring rules used to classify free-text portal messages."""
from dataclasses import dataclass
from typing import Any, Sequence


@dataclass(frozen=True)
class MarkerRule:
    markers: tuple[str, ...]
    verdict: Any

    def matches(self, message: str) -> bool:
        return any(m in message for m in self.markers)


def classify(message: str | None, rules: Sequence[MarkerRule], default: Any = None) -> Any:
    """Verdict of the first rule with a marker contained in `message`."""
    if not message:
        return default
    for rule in rules:
        if rule.matches(message):
            return rule.verdict
    return default


# Login --------------------------------------------------------------------
ACCOUNT_NOT_FOUND = "account_not_found"
BAD_CREDENTIALS = "bad_credentials"
RETRY = "retry"

LOGIN_RULES = (
    MarkerRule(("查無此人",), ACCOUNT_NOT_FOUND),
    MarkerRule(("帳號、密碼",), BAD_CREDENTIALS),
    MarkerRule(("驗證碼錯誤",), RETRY),
)

# Check-ins ----------------------------------------------------------------
ALREADY = "already"

SITE_SIGN_RULES = (
    MarkerRule(("已簽到", "already signed"), ALREADY),
)

GUILD_SIGN_RULES = (
    MarkerRule(("已經簽到過了", "已簽到", "already signed"), ALREADY),
)

# Anime quiz ---------------------------------------------------------------
LOGIN_REQUIRED = "login_required"

QUIZ_RULES = (
    MarkerRule(("已經答過題目", "already answered"), ALREADY),
    MarkerRule(("請先登入",), LOGIN_REQUIRED),
)
