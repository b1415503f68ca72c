"""Load a PolicyConfig from .gitpolicy.yaml, filling gaps from defaults."""

from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gitpolicy.config.schema import PolicyConfig, validate_policy

_TUPLE_FIELDS = ("protected_branches", "allowed_commit_types")
_BOOL_FIELDS = (
    "allow_direct_push",
    "require_clean_working_tree",
    "enforce_commit_message_format",
)

POLICY_FIELDS = frozenset(
    f.name for f in dataclasses.fields(PolicyConfig) if f.name != "repo_path"
)


class ConfigError(Exception):
    """Raised when the policy file is malformed or breaks an invariant."""


def read_document(path: Path) -> Dict[str, Any]:
    """Return the raw YAML mapping stored at *path* ({} for an empty file)."""
    try:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping at the top level")
    return data


def _coerce(name: str, value: Any) -> Any:
    if name in _TUPLE_FIELDS:
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ConfigError(f"{name} must be a list of strings")
        return tuple(str(v).strip() for v in value if str(v).strip())
    if name in _BOOL_FIELDS:
        if not isinstance(value, bool):
            raise ConfigError(f"{name} must be true or false")
        return value
    if not isinstance(value, str):
        raise ConfigError(f"{name} must be a string")
    return value


def build_config(data: Dict[str, Any], defaults: PolicyConfig) -> PolicyConfig:
    """Overlay the known keys of *data* onto *defaults*. Unknown keys are ignored."""
    overrides = {k: _coerce(k, v) for k, v in data.items() if k in POLICY_FIELDS}
    cfg = dataclasses.replace(defaults, **overrides)
    try:
        validate_policy(cfg)
    except ValueError as exc:
        raise ConfigError(str(exc)) from exc
    return cfg


def load_config(path: Path, defaults: Optional[PolicyConfig] = None) -> PolicyConfig:
    """Load and validate the policy at *path*. Raises ConfigError on bad input."""
    defaults = defaults or PolicyConfig()
    if not path.is_file():
        return defaults
    return build_config(read_document(path), defaults)
