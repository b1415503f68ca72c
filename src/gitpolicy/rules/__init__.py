"""Rule engine — verdict models, branch classification, evaluation, simulation."""

from gitpolicy.rules.engine import classify_branch, evaluate, validate_commit_message
from gitpolicy.rules.models import BranchClass, SimulationResult, Step, Verdict
from gitpolicy.rules.simulator import simulate

__all__ = [
    "BranchClass",
    "SimulationResult",
    "Step",
    "Verdict",
    "classify_branch",
    "evaluate",
    "simulate",
    "validate_commit_message",
]
