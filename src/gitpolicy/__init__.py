"""gitpolicy — advise whether git commands follow your branching policy."""

__version__ = "0.4.0"
