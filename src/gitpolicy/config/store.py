"""PolicyStore — file-backed policy with modification-time cache invalidation.

``get`` never raises: a missing, unparseable, or invalid policy file degrades
to the environment-derived defaults. ``update`` merges only the supplied keys
into the on-disk document and propagates write failures.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

import yaml

from gitpolicy.config.defaults import env_defaults
from gitpolicy.config.loader import (
    POLICY_FIELDS,
    ConfigError,
    build_config,
    read_document,
)
from gitpolicy.config.schema import PolicyConfig

logger = logging.getLogger(__name__)

_HEADER = "# Updated by gitpolicy\n"


class PolicyWriteError(OSError):
    """Raised when an updated policy cannot be written back to disk."""


class PolicyStore:
    """Holds the current PolicyConfig for one repository."""

    def __init__(self, path: Path, env: Optional[Mapping[str, str]] = None) -> None:
        self.path = Path(path)
        self._env = env
        self._lock = threading.Lock()
        self._cached: Optional[Tuple[int, PolicyConfig]] = None

    def _defaults(self) -> PolicyConfig:
        return dataclasses.replace(
            env_defaults(self._env), repo_path=str(self.path.parent)
        )

    def _mtime(self) -> Optional[int]:
        try:
            return self.path.stat().st_mtime_ns
        except OSError:
            return None

    # ---- read ----

    def get(self) -> PolicyConfig:
        """Return the cached policy, reloading if the file changed on disk."""
        with self._lock:
            return self._get_locked()

    def _get_locked(self) -> PolicyConfig:
        mtime = self._mtime()
        if mtime is None:
            self._cached = None
            return self._defaults()
        if self._cached is not None and self._cached[0] == mtime:
            return self._cached[1]

        defaults = self._defaults()
        try:
            cfg = build_config(read_document(self.path), defaults)
        except (ConfigError, OSError) as exc:
            logger.warning("Ignoring policy file %s: %s", self.path, exc)
            return defaults
        self._cached = (mtime, cfg)
        logger.debug("Loaded policy from %s", self.path)
        return cfg

    def invalidate(self) -> None:
        with self._lock:
            self._cached = None

    # ---- write ----

    def update(self, **partial: Any) -> PolicyConfig:
        """Merge *partial* into the policy document and return the reloaded policy.

        Keys whose value is None are skipped. Raises ConfigError for unknown
        keys or a result that breaks a policy invariant, and PolicyWriteError
        if the document cannot be written.
        """
        changes = {k: v for k, v in partial.items() if v is not None}
        unknown = sorted(set(changes) - POLICY_FIELDS)
        if unknown:
            raise ConfigError(f"Unknown policy field(s): {', '.join(unknown)}")

        with self._lock:
            document: dict[str, Any] = {}
            if self.path.is_file():
                try:
                    document = read_document(self.path)
                except (ConfigError, OSError) as exc:
                    logger.warning("Replacing unreadable policy file %s: %s", self.path, exc)

            for key, value in changes.items():
                document[key] = list(value) if isinstance(value, (tuple, set, frozenset)) else value

            # Reject the update before touching the file.
            build_config(document, self._defaults())

            text = _HEADER + yaml.safe_dump(document, sort_keys=False)
            try:
                self.path.write_text(text, encoding="utf-8")
            except OSError as exc:
                raise PolicyWriteError(f"Failed to write policy file {self.path}: {exc}") from exc

            logger.info("Updated policy %s: %s", self.path, ", ".join(sorted(changes)))
            self._cached = None
            return self._get_locked()
