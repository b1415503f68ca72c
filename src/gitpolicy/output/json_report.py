"""JSON reporter for hooks, CI pipelines, and scripting."""

from __future__ import annotations

import json
from typing import Any, Dict

from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.models import SimulationResult, Verdict


def _snapshot_dict(snapshot: RepositorySnapshot) -> Dict[str, Any]:
    return {
        "branch": snapshot.current_branch,
        "is_clean": snapshot.is_clean,
        "head_is_merge_commit": snapshot.has_multiple_parents,
    }


def verdict_to_dict(verdict: Verdict, snapshot: RepositorySnapshot) -> Dict[str, Any]:
    """Convert a Verdict to a JSON-serialisable dict."""
    return {
        "version": "1.0",
        "repository": _snapshot_dict(snapshot),
        "verdict": verdict.to_dict(),
    }


def simulation_to_dict(result: SimulationResult, snapshot: RepositorySnapshot) -> Dict[str, Any]:
    """Convert a SimulationResult to a JSON-serialisable dict."""
    return {
        "version": "1.0",
        "repository": _snapshot_dict(snapshot),
        "evaluated_steps": len(result.results),
        **result.to_dict(),
    }


def render(data: Dict[str, Any]) -> str:
    """Return formatted JSON string."""
    return json.dumps(data, indent=2)
