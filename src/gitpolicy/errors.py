"""Safe error type and the tool error envelope.

Policy denials are returned as verdicts, never as errors. These helpers are
for failures of the tool itself: bad input, unreadable policy, failed writes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class SafeError(Exception):
    """An error whose message may be shown to clients as-is."""

    code: str  # UserInput | Config | Persistence | Repository | Internal
    message: str
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


def to_error_result(*, code: str, message: str, hint: Optional[str] = None) -> Dict[str, Any]:
    """Build a standard tool error envelope."""
    out: Dict[str, Any] = {"ok": False, "code": code, "message": message}
    if hint:
        out["hint"] = hint
    return out


def safe_error_to_result(err: SafeError) -> Dict[str, Any]:
    return to_error_result(code=err.code, message=err.message, hint=err.hint)


def user_input_error(message: str, hint: Optional[str] = None) -> SafeError:
    return SafeError(code="UserInput", message=message, hint=hint)


def internal_error(message: str = "Internal error") -> Dict[str, Any]:
    return to_error_result(code="Internal", message=message)
