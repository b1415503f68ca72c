"""Rule engine — maps (snapshot, command, args, policy) to a Verdict.

Rules are checked in a fixed order and the first one that produces a verdict
wins. The commit-message check is the exception: it runs in addition to the
branch rules for ``commit`` and a failure replaces an allowing verdict.

``evaluate`` is pure and never raises. Missing repository facts are treated
permissively everywhere except the main-branch merge-commit check, which
fails closed.
"""

from __future__ import annotations

import re
from typing import List, Optional, Sequence, Tuple

from gitpolicy.config.schema import PolicyConfig
from gitpolicy.git.models import RepositorySnapshot
from gitpolicy.rules.models import BranchClass, Verdict

_COMMIT_MESSAGE_RE = re.compile(r"^(?P<type>[A-Za-z][\w-]*):\s+\S")

_MESSAGE_FLAGS = ("-m", "--message")


def classify_branch(branch: str, policy: PolicyConfig) -> BranchClass:
    """Classify *branch*: protected > integration > feature > hotfix > other."""
    if policy.is_protected(branch):
        return BranchClass.PROTECTED
    if branch == policy.integration_branch:
        return BranchClass.INTEGRATION
    if branch.startswith(policy.feature_prefix):
        return BranchClass.FEATURE
    if branch.startswith(policy.hotfix_prefix):
        return BranchClass.HOTFIX
    return BranchClass.OTHER


def extract_commit_message(args: Sequence[str]) -> Optional[str]:
    """Return the message passed with ``-m``/``--message``, or None."""
    for i, arg in enumerate(args):
        if arg in _MESSAGE_FLAGS:
            return args[i + 1] if i + 1 < len(args) else None
        if arg.startswith("--message="):
            return arg.split("=", 1)[1]
    return None


def validate_commit_message(message: str, policy: PolicyConfig) -> Tuple[bool, str]:
    """Check the subject line of *message* against ``type: description``."""
    types = ", ".join(policy.allowed_commit_types)
    subject = message.splitlines()[0] if message else ""
    m = _COMMIT_MESSAGE_RE.match(subject)
    if m is None:
        return False, (
            f'Commit message must follow format "type: description". Allowed types: {types}'
        )
    commit_type = m.group("type")
    if commit_type not in policy.allowed_commit_types:
        return False, f'Invalid commit type "{commit_type}". Allowed types: {types}'
    return True, "Commit message format is valid"


def _deny(
    command: str,
    rule: str,
    reason: str,
    suggestion: Optional[str] = None,
    *,
    degraded: bool = False,
) -> Verdict:
    return Verdict(
        allowed=False,
        severity="error",
        reason=reason,
        suggestion=suggestion,
        command=command,
        rule=rule,
        degraded=degraded,
    )


# ---- commit ----


def _commit_rules(
    branch: str, branch_class: BranchClass, args: List[str], policy: PolicyConfig
) -> Optional[Verdict]:
    integration = policy.integration_branch

    if branch_class is BranchClass.PROTECTED:
        return _deny(
            "commit",
            "protected-commit",
            f"Direct commits to protected branch '{branch}' are not allowed",
            f"Create a feature branch (git checkout {integration} && "
            f"git checkout -b {policy.feature_prefix}your-task) and open a "
            f"merge request into '{integration}'.",
        )

    verdict: Optional[Verdict] = None
    if branch_class is BranchClass.OTHER:
        verdict = Verdict(
            allowed=True,
            severity="warn",
            reason=f"Non-standard branch name '{branch}'",
            suggestion=f"Use {policy.feature_prefix}<name> or {policy.hotfix_prefix}<name> for consistency.",
            command="commit",
            rule="branch-naming",
        )
    elif branch_class is BranchClass.INTEGRATION:
        verdict = Verdict(
            allowed=True,
            severity=policy.integration_commit_severity,
            reason=f"Committing directly to integration branch '{branch}' is discouraged",
            suggestion=f"Create a feature branch: git checkout -b {policy.feature_prefix}your-feature",
            command="commit",
            rule="integration-commit",
        )

    if policy.enforce_commit_message_format:
        message = extract_commit_message(args)
        if message is not None:
            valid, detail = validate_commit_message(message, policy)
            if not valid:
                return _deny(
                    "commit",
                    "commit-message",
                    detail,
                    'Use format "type: description" where type is one of: '
                    + ", ".join(policy.allowed_commit_types),
                )
    return verdict


# ---- push ----


def _push_rules(
    branch: str, branch_class: BranchClass, snapshot: RepositorySnapshot, policy: PolicyConfig
) -> Optional[Verdict]:
    integration = policy.integration_branch

    if branch_class is BranchClass.PROTECTED and not policy.allow_direct_push:
        if not snapshot.is_clean:
            return _deny(
                "push",
                "push-uncommitted-changes",
                f"Cannot push '{branch}' with uncommitted changes",
                "Commit or stash changes first.",
            )
        if branch == policy.main_branch and not snapshot.has_multiple_parents:
            # Unknown ancestry is denied the same way as a non-merge commit.
            return _deny(
                "push",
                "main-merge-commit",
                f"Direct push to '{branch}' blocked, expected a merge commit",
                f"Merge '{integration}' into '{branch}' via a pull request instead.",
                degraded=snapshot.has_multiple_parents is None,
            )
        return _deny(
            "push",
            "protected-push",
            f"Direct push to protected branch '{branch}' blocked",
            "Push a feature branch and open a pull request instead.",
        )

    if (
        branch_class is BranchClass.INTEGRATION
        and policy.require_clean_working_tree
        and not snapshot.is_clean
    ):
        return _deny(
            "push",
            "integration-push-uncommitted-changes",
            f"Working tree must be clean before pushing integration branch '{branch}'",
            "Commit or stash your changes first.",
        )
    return None


# ---- merge ----


def _merge_rules(
    branch: str, branch_class: BranchClass, args: List[str], policy: PolicyConfig
) -> Optional[Verdict]:
    integration = policy.integration_branch
    source = args[0] if args else "unknown"

    if branch_class is BranchClass.PROTECTED:
        if source != integration:
            return _deny(
                "merge",
                "protected-merge-source",
                f"Only '{integration}' can be merged into protected branch '{branch}'",
                f"Merge '{source}' into '{integration}' first, then merge '{integration}' into '{branch}'.",
            )
        return Verdict(
            allowed=True,
            severity="warn",
            reason=f"Merging '{source}' into '{branch}', ensure it is tested and stable",
            command="merge",
            rule="protected-merge",
        )

    if branch_class is BranchClass.INTEGRATION and classify_branch(source, policy) in (
        BranchClass.FEATURE,
        BranchClass.HOTFIX,
    ):
        return Verdict(
            allowed=True,
            severity="info",
            reason=f"Merging '{source}' into integration branch '{branch}'",
            command="merge",
            rule="integration-merge",
        )
    return None


def evaluate(
    snapshot: RepositorySnapshot,
    command: str,
    args: Sequence[str],
    policy: PolicyConfig,
) -> Verdict:
    """Return the verdict for running *command* with *args* on *snapshot*."""
    args = list(args)
    branch = snapshot.current_branch
    branch_class = classify_branch(branch, policy)

    verdict: Optional[Verdict] = None
    if command == "commit":
        verdict = _commit_rules(branch, branch_class, args, policy)
    elif command == "push":
        verdict = _push_rules(branch, branch_class, snapshot, policy)
    elif command == "merge":
        verdict = _merge_rules(branch, branch_class, args, policy)

    if verdict is not None:
        return verdict

    return Verdict(
        allowed=True,
        severity="info",
        reason=f"Command '{command}' is allowed on {branch_class.value} branch '{branch}'",
        command=command,
        rule="default",
    )
