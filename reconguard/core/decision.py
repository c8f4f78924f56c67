"""
reconguard/core/decision.py

Graded guard outcomes and their precedence.

Precedence (total):
    FORBID  >  {DEGRADE_PRECISION, PAUSE_AND_REST}  >  ALLOW_FULL

DEGRADE_PRECISION and PAUSE_AND_REST are peers. When two peers meet,
the one observed first in evaluation order wins. Evaluation order can
therefore change which reason is reported, never whether a proposal
is forbidden.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable


class DecisionKind(Enum):
    """The four graded outcomes a guard can return"""
    ALLOW_FULL        = "AllowFull"
    DEGRADE_PRECISION = "DegradePrecision"
    PAUSE_AND_REST    = "PauseAndRest"
    FORBID            = "Forbid"


_SEVERITY = {
    DecisionKind.ALLOW_FULL:        0,
    DecisionKind.DEGRADE_PRECISION: 1,
    DecisionKind.PAUSE_AND_REST:    1,
    DecisionKind.FORBID:            2,
}


@dataclass(frozen=True)
class Decision:
    """
    Outcome of one check. Immutable once produced.

    source names the guard (or guard/category) that produced it, so a
    rejection can be traced back to its origin for display.
    """
    kind:   DecisionKind
    reason: str = ""
    source: str = ""

    @classmethod
    def allow(cls, source: str = "") -> "Decision":
        return cls(DecisionKind.ALLOW_FULL, "", source)

    @classmethod
    def degrade(cls, reason: str, source: str = "") -> "Decision":
        return cls(DecisionKind.DEGRADE_PRECISION, reason, source)

    @classmethod
    def pause(cls, reason: str, source: str = "") -> "Decision":
        return cls(DecisionKind.PAUSE_AND_REST, reason, source)

    @classmethod
    def forbid(cls, reason: str, source: str = "") -> "Decision":
        return cls(DecisionKind.FORBID, reason, source)

    @property
    def severity(self) -> int:
        return _SEVERITY[self.kind]

    @property
    def is_forbid(self) -> bool:
        return self.kind is DecisionKind.FORBID

    @property
    def is_soft(self) -> bool:
        return self.severity == 1

    @property
    def is_allow(self) -> bool:
        return self.kind is DecisionKind.ALLOW_FULL

    def to_dict(self) -> dict:
        return {
            "kind":   self.kind.value,
            "reason": self.reason,
            "source": self.source,
        }

    @staticmethod
    def from_dict(data: dict) -> "Decision":
        return Decision(
            kind=DecisionKind(data["kind"]),
            reason=data.get("reason", ""),
            source=data.get("source", ""),
        )

    def __str__(self) -> str:
        if self.reason:
            return f"{self.kind.value}({self.reason})"
        return self.kind.value


def combine(first: Decision, second: Decision) -> Decision:
    """
    Return the higher-precedence decision.

    Ties resolve to `first`, so callers must pass decisions in the order
    they were observed.
    """
    if second.severity > first.severity:
        return second
    return first


def combine_all(decisions: Iterable[Decision]) -> Decision:
    """Left fold of combine() over decisions in evaluation order."""
    result = Decision.allow()
    for decision in decisions:
        result = combine(result, decision)
    return result
