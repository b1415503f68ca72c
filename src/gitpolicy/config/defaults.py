"""Default policy values, env-derived defaults, and starter .gitpolicy.yaml template."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from gitpolicy.config.schema import PolicyConfig

CONFIG_FILENAME = ".gitpolicy.yaml"


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(p.strip() for p in value.split(",") if p.strip())


def env_defaults(env: Optional[Mapping[str, str]] = None) -> PolicyConfig:
    """Build the fallback policy from GITPOLICY_* environment variables."""
    env = os.environ if env is None else env
    base = PolicyConfig()
    protected = base.protected_branches
    if val := env.get("GITPOLICY_PROTECTED"):
        protected = _split_list(val) or protected
    return PolicyConfig(
        protected_branches=protected,
        integration_branch=env.get("GITPOLICY_INTEGRATION_BRANCH") or base.integration_branch,
        feature_prefix=env.get("GITPOLICY_FEATURE_PREFIX") or base.feature_prefix,
        hotfix_prefix=env.get("GITPOLICY_HOTFIX_PREFIX") or base.hotfix_prefix,
        main_branch=env.get("GITPOLICY_MAIN_BRANCH") or base.main_branch,
        repo_path=env.get("GITPOLICY_REPO_PATH") or base.repo_path,
    )


DEFAULT_YAML = """\
# gitpolicy configuration
# Branches listed here never accept direct commits or pushes.
protected_branches:
  - main
  - master

# Feature and hotfix work merges here before reaching a protected branch.
integration_branch: develop

feature_prefix: feature/
hotfix_prefix: hotfix/

# Pushes to this branch must be merge commits.
main_branch: main

allowed_commit_types: [feat, fix, docs, style, refactor, test, chore]

allow_direct_push: false
require_clean_working_tree: true
enforce_commit_message_format: true
integration_commit_severity: warn   # info | warn
"""
