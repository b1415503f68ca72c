"""Data models for repository state."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

UNKNOWN_BRANCH = "unknown"


@dataclass(frozen=True)
class RepositorySnapshot:
    """Point-in-time facts about a repository.

    ``has_multiple_parents`` is None when the ancestry of HEAD could not be
    determined.
    """

    current_branch: str = UNKNOWN_BRANCH
    is_clean: bool = True
    has_multiple_parents: Optional[bool] = None

    @property
    def is_unknown(self) -> bool:
        return self.current_branch == UNKNOWN_BRANCH
