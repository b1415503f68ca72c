"""Sequence simulator — replays hypothetical commands through the rule engine.

All steps are evaluated against the same snapshot, strictly in input order.
Nothing is executed and repository state is never re-read between steps.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Union

from gitpolicy.config.schema import PolicyConfig
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.engine import evaluate
from gitpolicy.rules.models import SimulationResult, Step


def simulate(
    snapshot: RepositorySnapshot,
    policy: PolicyConfig,
    steps: Iterable[Union[Step, Dict[str, Any]]],
    stop_on_violation: bool = True,
) -> SimulationResult:
    """Evaluate *steps* in order and collect their verdicts.

    With *stop_on_violation*, steps after the first denied one are not
    evaluated at all.
    """
    result = SimulationResult()
    for raw in steps:
        step = Step.coerce(raw)
        verdict = evaluate(snapshot, step.command, step.args, policy)
        result.results.append(verdict)
        if not verdict.allowed and result.first_violation is None:
            result.first_violation = step.command
            if stop_on_violation:
                break
    return result
