"""StageOutcome and RunReport dataclasses."""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from bonus.models.challenge import Stage


class Outcome(str, Enum):
    SUCCESS = "success"
    ALREADY_DONE = "already_done"
    NOT_A_MEMBER = "not_a_member"
    FAILURE = "failure"


_ICONS = {
    Outcome.SUCCESS: "✅",
    Outcome.ALREADY_DONE: "⚠️",
    Outcome.NOT_A_MEMBER: "⚠️",
    Outcome.FAILURE: "❌",
}


@dataclass(frozen=True)
class StageOutcome:
    stage: Stage
    outcome: Outcome
    detail: str = ""

    @classmethod
    def success(cls, stage: Stage, detail: str = "") -> "StageOutcome":
        return cls(stage=stage, outcome=Outcome.SUCCESS, detail=detail)

    @classmethod
    def already_done(cls, stage: Stage, detail: str = "") -> "StageOutcome":
        return cls(stage=stage, outcome=Outcome.ALREADY_DONE, detail=detail)

    @classmethod
    def not_a_member(cls, stage: Stage, detail: str = "") -> "StageOutcome":
        return cls(stage=stage, outcome=Outcome.NOT_A_MEMBER, detail=detail)

    @classmethod
    def failure(cls, stage: Stage, reason: str) -> "StageOutcome":
        return cls(stage=stage, outcome=Outcome.FAILURE, detail=reason)

    @property
    def is_failure(self) -> bool:
        return self.outcome is Outcome.FAILURE

    @property
    def message(self) -> str:
        return f"{_ICONS[self.outcome]} {self.detail}"

    def to_dict(self) -> dict:
        return {"stage": self.stage.value, "outcome": self.outcome.value, "detail": self.detail}

    @classmethod
    def from_dict(cls, data: dict) -> "StageOutcome":
        return cls(stage=Stage(data["stage"]), outcome=Outcome(data["outcome"]), detail=data.get("detail", ""))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RunReport:
    """
    Ordered per-stage outcomes of one run.
    success is False only when the run was aborted (login failure); stage
    failures are reported in the entries but do not fail the run.
    """
    success: bool
    outcomes: tuple[StageOutcome, ...] = ()
    error: str | None = None
    timestamp: datetime = field(default_factory=_utcnow)

    @property
    def messages(self) -> list[str]:
        lines = [o.message for o in self.outcomes]
        if self.error:
            lines.append(f"❌ Error: {self.error}")
        return lines

    @property
    def body(self) -> str:
        return "\n".join(self.messages)

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "results": self.messages,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "timestamp": self.timestamp.isoformat(),
        }
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "RunReport":
        return cls(
            success=bool(data["success"]),
            outcomes=tuple(StageOutcome.from_dict(o) for o in data.get("outcomes", [])),
            error=data.get("error"),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
