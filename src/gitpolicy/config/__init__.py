"""Policy configuration — schema, defaults, loading, and the file-backed store."""

from gitpolicy.config.loader import ConfigError, load_config
from gitpolicy.config.schema import PolicyConfig, Severity
from gitpolicy.config.store import PolicyStore, PolicyWriteError

__all__ = [
    "ConfigError",
    "PolicyConfig",
    "PolicyStore",
    "PolicyWriteError",
    "Severity",
    "load_config",
]
