"""Configuration schema — the branching policy dataclass and severity levels."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Literal, Tuple

Severity = Literal["info", "warn", "error"]

DEFAULT_COMMIT_TYPES: Tuple[str, ...] = (
    "feat",
    "fix",
    "docs",
    "style",
    "refactor",
    "test",
    "chore",
)


@dataclass(frozen=True)
class PolicyConfig:
    """The governing branching ruleset.

    ``integration_branch`` should not also be listed in ``protected_branches``;
    when it is, the branch is classified as protected.
    """

    protected_branches: Tuple[str, ...] = ("main", "master")
    integration_branch: str = "develop"
    feature_prefix: str = "feature/"
    hotfix_prefix: str = "hotfix/"
    main_branch: str = "main"  # subject to the merge-commit push check
    allowed_commit_types: Tuple[str, ...] = DEFAULT_COMMIT_TYPES
    allow_direct_push: bool = False
    require_clean_working_tree: bool = True
    enforce_commit_message_format: bool = True
    integration_commit_severity: Severity = "warn"
    repo_path: str = field(default=".", compare=False)

    def is_protected(self, branch: str) -> bool:
        return branch in self.protected_branches

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["protected_branches"] = list(self.protected_branches)
        data["allowed_commit_types"] = list(self.allowed_commit_types)
        return data


def validate_policy(cfg: PolicyConfig) -> None:
    """Raise ``ValueError`` if *cfg* breaks a policy invariant."""
    if not cfg.feature_prefix or not cfg.hotfix_prefix:
        raise ValueError("feature_prefix and hotfix_prefix must be non-empty")
    if cfg.feature_prefix.startswith(cfg.hotfix_prefix) or cfg.hotfix_prefix.startswith(
        cfg.feature_prefix
    ):
        raise ValueError(
            f"feature_prefix {cfg.feature_prefix!r} and hotfix_prefix "
            f"{cfg.hotfix_prefix!r} must not be equal or prefixes of one another"
        )
    if not cfg.integration_branch:
        raise ValueError("integration_branch must be non-empty")
    if cfg.integration_commit_severity not in ("info", "warn"):
        raise ValueError("integration_commit_severity must be 'info' or 'warn'")
    if not cfg.allowed_commit_types:
        raise ValueError("allowed_commit_types must list at least one type")
