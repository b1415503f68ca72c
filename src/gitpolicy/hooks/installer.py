"""Pre-push hook installer — gitpolicy install / uninstall.

The hook goes wherever git will actually run it: ``core.hooksPath`` when
set, otherwise the repository's own hooks directory. ``shared=True`` writes
it to a tracked ``.githooks`` directory and points ``core.hooksPath`` there,
so the whole team picks it up from the repository.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Tuple

from gitpolicy.git.adapter import GitError, get_hooks_dir, set_hooks_path

logger = logging.getLogger(__name__)

HOOK_NAME = "pre-push"
SHARED_HOOKS_DIR = ".githooks"

_MARKER = "# gitpolicy-hook"
_SCRIPT = f"""\
#!/bin/sh
{_MARKER}
# Blocks pushes the gitpolicy branching policy denies.
# Remove with: gitpolicy uninstall

exec gitpolicy check push
"""


def _owned(hook: Path) -> bool:
    return _MARKER in hook.read_text(encoding="utf-8", errors="replace")


def install_hook(repo_root: Path, *, force: bool = False, shared: bool = False) -> Tuple[bool, str]:
    """Write the pre-push hook. Returns (success, message)."""
    try:
        if shared:
            set_hooks_path(repo_root, SHARED_HOOKS_DIR)
        hooks_dir = get_hooks_dir(repo_root)
    except GitError as exc:
        return False, f"Cannot locate hooks directory in {repo_root}: {exc}"

    hook = hooks_dir / HOOK_NAME
    if hook.exists():
        if _owned(hook):
            return True, f"gitpolicy hook is already installed at {hook}"
        if not force:
            return False, (
                f"{hook} belongs to another tool. Re-run with --force to replace it, "
                "or call 'gitpolicy check push' from it."
            )
        logger.info("Replacing existing %s hook at %s", HOOK_NAME, hook)

    hooks_dir.mkdir(parents=True, exist_ok=True)
    hook.write_text(_SCRIPT, encoding="utf-8")
    try:
        hook.chmod(0o755)
    except OSError:
        pass  # Windows doesn't need chmod

    return True, f"Installed {HOOK_NAME} hook at {hook}"


def uninstall_hook(repo_root: Path) -> Tuple[bool, str]:
    """Delete the pre-push hook if gitpolicy wrote it. Returns (success, message)."""
    try:
        hook = get_hooks_dir(repo_root) / HOOK_NAME
    except GitError as exc:
        return False, f"Cannot locate hooks directory in {repo_root}: {exc}"

    if not hook.exists():
        return True, f"No {HOOK_NAME} hook at {hook}, nothing to remove."
    if not _owned(hook):
        return False, f"{hook} was not written by gitpolicy; leaving it in place."

    hook.unlink()
    return True, f"Removed {HOOK_NAME} hook from {hook}"
