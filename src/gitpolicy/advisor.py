"""PolicyAdvisor — the evaluation API bound by the server and the CLI.

An advisor owns the policy store for one repository and a snapshot provider.
Every call takes a fresh snapshot and re-reads the policy, so branch switches
and policy edits between calls are always observed.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from gitpolicy.config.defaults import CONFIG_FILENAME
from gitpolicy.config.schema import PolicyConfig
from gitpolicy.config.store import PolicyStore
from gitpolicy.git.adapter import GitError, list_branches, take_snapshot
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.engine import classify_branch, evaluate
from gitpolicy.rules.models import BranchClass, SimulationResult, Step, Verdict
from gitpolicy.rules.simulator import simulate
from gitpolicy.workflow import (
    ComplianceReport,
    WorkflowSuggestion,
    analyze_compliance,
    suggest_workflow,
)

logger = logging.getLogger(__name__)

SnapshotProvider = Callable[[], RepositorySnapshot]
BranchProvider = Callable[[], List[str]]


class PolicyAdvisor:
    """Advises on git commands for the repository at *repo_root*."""

    def __init__(
        self,
        repo_root: Path,
        *,
        store: Optional[PolicyStore] = None,
        snapshot_provider: Optional[SnapshotProvider] = None,
        branch_provider: Optional[BranchProvider] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.repo_root = Path(repo_root)
        self.store = store or PolicyStore(self.repo_root / CONFIG_FILENAME, env=env)
        self._snapshot = snapshot_provider or (lambda: take_snapshot(self.repo_root))
        self._branches = branch_provider or (lambda: list_branches(self.repo_root))

    @property
    def policy(self) -> PolicyConfig:
        return self.store.get()

    def snapshot(self) -> RepositorySnapshot:
        return self._snapshot()

    # ---- evaluation ----

    def evaluate(self, command: str, args: Sequence[str] = ()) -> Verdict:
        snapshot = self.snapshot()
        verdict = evaluate(snapshot, command, args, self.policy)
        logger.debug(
            "%s on %s -> allowed=%s rule=%s",
            command,
            snapshot.current_branch,
            verdict.allowed,
            verdict.rule,
        )
        return verdict

    def simulate(
        self,
        steps: Iterable[Union[Step, Dict[str, Any]]],
        stop_on_violation: bool = True,
    ) -> SimulationResult:
        return simulate(self.snapshot(), self.policy, steps, stop_on_violation)

    # ---- introspection ----

    def status(self) -> Dict[str, Any]:
        snapshot = self.snapshot()
        policy = self.policy
        branch_class = classify_branch(snapshot.current_branch, policy)
        warnings: List[str] = []
        if branch_class is BranchClass.PROTECTED:
            warnings.append("Protected branch")
        elif branch_class is BranchClass.OTHER:
            warnings.append("Branch does not follow the naming convention")
        if snapshot.is_unknown:
            warnings.append("Current branch could not be determined")
        if not snapshot.is_clean:
            warnings.append("Working tree has uncommitted changes")
        return {
            "branch": snapshot.current_branch,
            "branch_class": branch_class.value,
            "is_clean": snapshot.is_clean,
            "is_protected": branch_class is BranchClass.PROTECTED,
            "head_is_merge_commit": snapshot.has_multiple_parents,
            "warnings": warnings,
        }

    def get_config(self) -> PolicyConfig:
        return self.policy

    def update_config(self, **partial: Any) -> PolicyConfig:
        return self.store.update(**partial)

    def suggest(self, task: str) -> WorkflowSuggestion:
        return suggest_workflow(task, self.snapshot(), self.policy)

    def compliance(self) -> ComplianceReport:
        """Analyze branch layout. Raises GitError if branches cannot be listed."""
        try:
            branches = self._branches()
        except GitError:
            logger.warning("Could not list branches in %s", self.repo_root)
            raise
        return analyze_compliance(branches, self.policy)
