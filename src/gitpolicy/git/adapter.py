"""Git subprocess wrapper — branch, working-tree, and ancestry queries."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional

from gitpolicy.git.models import UNKNOWN_BRANCH, RepositorySnapshot

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when git is unavailable or returns an unexpected error."""


def _run_git(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run a git command and return stdout. Raises GitError on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH")
    except NotADirectoryError:
        raise GitError(f"not a directory: {cwd}")
    except subprocess.TimeoutExpired:
        raise GitError(f"git command timed out after {timeout}s: git {' '.join(args)}")

    if result.returncode != 0:
        stderr = result.stderr.strip()
        raise GitError(f"git error: {stderr or f'exit status {result.returncode}'}")
    return result.stdout


def get_repo_root(cwd: Optional[Path] = None) -> Path:
    """Return the root of the current git repository."""
    cwd = cwd or Path.cwd()
    out = _run_git(["rev-parse", "--show-toplevel"], cwd=cwd)
    return Path(out.strip())


def get_hooks_dir(repo_root: Path) -> Path:
    """Return the directory git runs hooks from.

    Honours ``core.hooksPath`` and linked worktrees.
    """
    out = _run_git(["rev-parse", "--git-path", "hooks"], cwd=repo_root).strip()
    path = Path(out)
    return path if path.is_absolute() else repo_root / path


def set_hooks_path(repo_root: Path, hooks_path: str) -> None:
    """Point ``core.hooksPath`` at *hooks_path* for this repository."""
    _run_git(["config", "core.hooksPath", hooks_path], cwd=repo_root)


def get_current_branch(repo_root: Path) -> str:
    """Return the checked-out branch name ('HEAD' when detached)."""
    return _run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root).strip()


def get_status_lines(repo_root: Path) -> List[str]:
    """Return porcelain status lines for pending changes."""
    output = _run_git(["status", "--porcelain"], cwd=repo_root)
    return [line.strip() for line in output.splitlines() if line.strip()]


def head_parent_count(repo_root: Path) -> int:
    """Return the number of parents of HEAD (2+ for a merge commit)."""
    output = _run_git(["log", "-1", "--pretty=%P"], cwd=repo_root)
    return len(output.split())


def list_branches(repo_root: Path) -> List[str]:
    """Return local and remote branch names, remote prefixes stripped, deduplicated."""
    output = _run_git(
        ["branch", "-a", "--format=%(refname:short)"],
        cwd=repo_root,
    )
    seen: List[str] = []
    for line in output.splitlines():
        name = line.strip()
        if not name or name in ("HEAD", "origin") or name.endswith("/HEAD"):
            continue
        if name.startswith("origin/"):
            name = name[len("origin/"):]
        if name not in seen:
            seen.append(name)
    return seen


def take_snapshot(repo_root: Path) -> RepositorySnapshot:
    """Collect branch, cleanliness, and ancestry facts. Never raises.

    Each fact degrades independently: an undeterminable branch becomes
    ``unknown``, an undeterminable working tree is reported clean, and
    unavailable ancestry is reported as None.
    """
    try:
        branch = get_current_branch(repo_root) or UNKNOWN_BRANCH
    except GitError as exc:
        logger.debug("Could not read current branch: %s", exc)
        branch = UNKNOWN_BRANCH

    try:
        is_clean = not get_status_lines(repo_root)
    except GitError as exc:
        logger.debug("Could not read working tree status: %s", exc)
        is_clean = True

    has_multiple_parents: Optional[bool]
    try:
        has_multiple_parents = head_parent_count(repo_root) >= 2
    except GitError as exc:
        logger.debug("Could not read HEAD ancestry: %s", exc)
        has_multiple_parents = None

    return RepositorySnapshot(
        current_branch=branch,
        is_clean=is_clean,
        has_multiple_parents=has_multiple_parents,
    )
