"""Shared test fixtures — policies, snapshots, temp git repos."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from gitpolicy.config.schema import PolicyConfig
from gitpolicy.git.models import RepositorySnapshot


def _git(repo: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=repo, capture_output=True, check=True)


@pytest.fixture
def git():
    """Run a git command in a repo, failing the test on error."""
    return _git


@pytest.fixture
def policy() -> PolicyConfig:
    """The default branching policy."""
    return PolicyConfig()


@pytest.fixture
def snapshot_on():
    """Factory for snapshots on a given branch."""

    def _make(branch: str, *, clean: bool = True, merge: bool | None = False) -> RepositorySnapshot:
        return RepositorySnapshot(current_branch=branch, is_clean=clean, has_multiple_parents=merge)

    return _make


@pytest.fixture(autouse=True)
def _clear_policy_env(monkeypatch):
    for name in (
        "GITPOLICY_PROTECTED",
        "GITPOLICY_INTEGRATION_BRANCH",
        "GITPOLICY_FEATURE_PREFIX",
        "GITPOLICY_HOTFIX_PREFIX",
        "GITPOLICY_MAIN_BRANCH",
        "GITPOLICY_REPO_PATH",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tmp_git_repo(tmp_path: Path) -> Path:
    """Create a temporary git repository on branch 'main' with one commit."""
    subprocess.run(["git", "init", str(tmp_path)], capture_output=True, check=True)
    _git(tmp_path, "config", "user.email", "test@test.com")
    _git(tmp_path, "config", "user.name", "Test")
    _git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    # Initial commit
    readme = tmp_path / "README.md"
    readme.write_text("# Test\n")
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-m", "init")
    return tmp_path
