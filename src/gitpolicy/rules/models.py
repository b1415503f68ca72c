"""Rule data models — verdicts, branch classes, simulation steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from gitpolicy.config.schema import Severity


class BranchClass(str, Enum):
    PROTECTED = "protected"
    INTEGRATION = "integration"
    FEATURE = "feature"
    HOTFIX = "hotfix"
    OTHER = "other"


@dataclass(frozen=True)
class Verdict:
    """The decision for one proposed git command.

    ``degraded`` marks a denial made without the repository facts the rule
    needed, so clients can tell "cannot determine" apart from a violation.
    """

    allowed: bool
    severity: Severity
    reason: str
    suggestion: Optional[str] = None
    command: str = ""
    rule: str = "default"
    degraded: bool = False

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "command": self.command,
            "allowed": self.allowed,
            "severity": self.severity,
            "reason": self.reason,
            "rule": self.rule,
        }
        if self.suggestion:
            out["suggestion"] = self.suggestion
        if self.degraded:
            out["degraded"] = True
        return out


@dataclass(frozen=True)
class Step:
    """One hypothetical git command in a simulated sequence."""

    command: str
    args: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Step":
        return cls(command=str(data["command"]), args=tuple(str(a) for a in data.get("args") or ()))

    @classmethod
    def coerce(cls, value: "Step | Dict[str, Any]") -> "Step":
        return value if isinstance(value, Step) else cls.from_dict(value)


@dataclass
class SimulationResult:
    """Verdicts for the evaluated steps of a simulated sequence."""

    results: List[Verdict] = field(default_factory=list)
    first_violation: Optional[str] = None

    @property
    def all_allowed(self) -> bool:
        return self.first_violation is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [v.to_dict() for v in self.results],
            "first_violation": self.first_violation,
        }
