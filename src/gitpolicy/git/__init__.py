"""Git interface layer — subprocess adapter and repository snapshot."""

from gitpolicy.git.adapter import (
    GitError,
    get_current_branch,
    get_hooks_dir,
    get_repo_root,
    get_status_lines,
    head_parent_count,
    list_branches,
    set_hooks_path,
    take_snapshot,
)
from gitpolicy.git.models import UNKNOWN_BRANCH, RepositorySnapshot

__all__ = [
    "GitError",
    "RepositorySnapshot",
    "UNKNOWN_BRANCH",
    "get_current_branch",
    "get_hooks_dir",
    "get_repo_root",
    "get_status_lines",
    "head_parent_count",
    "list_branches",
    "set_hooks_path",
    "take_snapshot",
]
