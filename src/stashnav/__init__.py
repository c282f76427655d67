"""Interactive terminal browser for the git stash stack."""

__version__ = "0.1.0"
