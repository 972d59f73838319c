"""Stage identifiers and the trivia Challenge / CandidateAnswer dataclasses."""
from dataclasses import dataclass, field
from enum import Enum


class Stage(str, Enum):
    LOGIN = "login"
    SITE_SIGN = "site_sign"
    GUILD_SIGN = "guild_sign"
    ANIME_QUIZ = "anime_quiz"


class ChallengeAlreadySubmitted(RuntimeError):
    pass


@dataclass
class Challenge:
    """Server-issued daily question. Only valid for the current trivia stage."""
    token: str
    question: str = ""
    options: list[str] = field(default_factory=list)
    submitted: bool = False

    def mark_submitted(self) -> None:
        if self.submitted:
            raise ChallengeAlreadySubmitted(f"challenge {self.token[:8]}… was already submitted")
        self.submitted = True

    @classmethod
    def from_payload(cls, payload: dict) -> "Challenge":
        answers = payload.get("answers") or []
        return cls(
            token=str(payload["token"]),
            question=str(payload.get("question") or ""),
            options=[str(a) for a in answers],
        )


@dataclass(frozen=True)
class CandidateAnswer:
    """Option number ("1".."4") scraped from an answer article. Not guaranteed correct."""
    option: str
    article_sn: str = ""
