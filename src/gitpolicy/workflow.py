"""Workflow suggestions and branch-layout compliance analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Sequence

from gitpolicy.config.schema import PolicyConfig
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.engine import classify_branch
from gitpolicy.rules.models import BranchClass

WORKFLOW_TASKS = ("start_feature", "merge_feature", "promote_to_main", "hotfix")

_INTEGRATION_HINTS = ("dev", "develop", "integration")


@dataclass
class WorkflowSuggestion:
    workflow: str
    description: str
    commands: List[str] = field(default_factory=list)
    safety_checks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def suggest_workflow(
    task: str, snapshot: RepositorySnapshot, policy: PolicyConfig
) -> WorkflowSuggestion:
    """Return the git steps for *task* under *policy* from the current branch."""
    branch = snapshot.current_branch
    integration = policy.integration_branch
    main = policy.main_branch
    feature = f"{policy.feature_prefix}your-feature-name"
    hotfix = f"{policy.hotfix_prefix}urgent-fix-name"

    if task == "start_feature":
        return WorkflowSuggestion(
            workflow="Create new feature branch",
            description="Start new feature development from the integration branch",
            commands=[
                f"git checkout {integration}",
                f"git pull origin {integration}",
                f"git checkout -b {feature}",
            ],
            safety_checks=[
                f"Ensure you're on {integration} branch",
                "Pull latest changes first",
                "Use descriptive feature branch name",
            ],
        )

    if task == "merge_feature":
        branch_class = classify_branch(branch, policy)
        if branch_class is not BranchClass.FEATURE:
            return WorkflowSuggestion(
                workflow="Error: Not on feature branch",
                description=(
                    f"Currently on {branch_class.value} branch '{branch}'. "
                    "Switch to a feature branch first."
                ),
                safety_checks=["You must be on a feature branch to merge it"],
            )
        return WorkflowSuggestion(
            workflow="Merge feature to integration",
            description="Merge completed feature to integration branch",
            commands=[
                f"git push origin {branch}",
                f"git checkout {integration}",
                f"git merge {branch}",
                f"git push origin {integration}",
                f"git branch -d {branch}",
                f"git push origin --delete {branch}",
            ],
            safety_checks=[
                "Ensure feature is complete and tested",
                "Working tree should be clean",
                "Feature branch should be up to date",
            ],
        )

    if task == "promote_to_main":
        if branch != integration:
            return WorkflowSuggestion(
                workflow="Error: Not on integration branch",
                description=f"Currently on '{branch}'. Only {integration} can be promoted to {main}.",
                safety_checks=[f"You must be on {integration} branch"],
            )
        return WorkflowSuggestion(
            workflow=f"Promote integration to {main}",
            description="Deploy tested integration branch to production",
            commands=[
                f"git checkout {main}",
                f"git merge --no-ff {integration}",
                f"git push origin {main}",
            ],
            safety_checks=[
                f"{integration} must be fully tested",
                "All QA checks should pass",
                "Deployment should be coordinated with team",
            ],
        )

    if task == "hotfix":
        return WorkflowSuggestion(
            workflow="Create emergency hotfix",
            description="Create hotfix branch for urgent production fixes",
            commands=[
                f"git checkout {main}",
                f"git pull origin {main}",
                f"git checkout -b {hotfix}",
                "git add .",
                'git commit -m "fix: urgent fix description"',
                f"git checkout {integration}",
                f"git merge {hotfix}",
                f"git push origin {integration}",
                f"git branch -d {hotfix}",
            ],
            safety_checks=[
                "Only for urgent production issues",
                "Test the fix thoroughly",
                f"Promote {integration} to {main} once the fix is verified",
            ],
        )

    return WorkflowSuggestion(
        workflow="Unknown task",
        description=f"Task '{task}' is not recognized",
        safety_checks=[f"Available tasks: {', '.join(WORKFLOW_TASKS)}"],
    )


@dataclass
class ComplianceIssue:
    type: str  # missing_branch | misnamed_branch
    severity: str
    description: str
    current_state: str
    expected_state: str
    recommended_action: str


@dataclass
class ComplianceReport:
    issues: List[ComplianceIssue] = field(default_factory=list)

    @property
    def is_compliant(self) -> bool:
        return not self.issues

    @property
    def summary(self) -> str:
        if self.is_compliant:
            return "Repository is fully compliant with git workflow rules"
        errors = sum(1 for i in self.issues if i.severity == "error")
        warnings = sum(1 for i in self.issues if i.severity == "warn")
        return f"Repository has compliance issues: {errors} errors, {warnings} warnings"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_compliant": self.is_compliant,
            "issues": [asdict(i) for i in self.issues],
            "summary": self.summary,
        }


def analyze_compliance(branches: Sequence[str], policy: PolicyConfig) -> ComplianceReport:
    """Check that the configured integration and protected branches exist."""
    report = ComplianceReport()
    available = ", ".join(branches) or "(none)"
    integration = policy.integration_branch

    if integration not in branches:
        similar = [
            b
            for b in branches
            if classify_branch(b, policy) is BranchClass.OTHER
            and any(h in b for h in _INTEGRATION_HINTS)
        ]
        if similar:
            report.issues.append(
                ComplianceIssue(
                    type="misnamed_branch",
                    severity="error",
                    description=f"Integration branch '{integration}' not found, but similar branches exist",
                    current_state=f"Available branches: {', '.join(similar)}",
                    expected_state=f"Integration branch: {integration}",
                    recommended_action=(
                        f"Rename '{similar[0]}' to '{integration}' or set "
                        f"integration_branch to '{similar[0]}'"
                    ),
                )
            )
        else:
            report.issues.append(
                ComplianceIssue(
                    type="missing_branch",
                    severity="error",
                    description=f"Integration branch '{integration}' does not exist",
                    current_state=f"Available branches: {available}",
                    expected_state=f"Integration branch: {integration}",
                    recommended_action=f"Create '{integration}' from {policy.main_branch}",
                )
            )

    for name in policy.protected_branches:
        if name in branches:
            continue
        report.issues.append(
            ComplianceIssue(
                type="missing_branch",
                severity="warn",
                description=f"Protected branch '{name}' does not exist",
                current_state=f"Available branches: {available}",
                expected_state=f"Protected branch: {name}",
                recommended_action="Create the protected branch or remove it from the configuration",
            )
        )
    return report
