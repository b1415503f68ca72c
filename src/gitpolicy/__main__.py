"""Allow ``python -m gitpolicy``."""

from gitpolicy.cli import app

if __name__ == "__main__":
    app()
