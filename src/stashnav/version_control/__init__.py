"""Version control abstractions and implementations."""

from stashnav.version_control.base import (
    StashAdapter,
    StashCommandError,
    StashFailure,
    VersionControlError,
)
from stashnav.version_control.git_service import GitStashService

__all__ = [
    "GitStashService",
    "StashAdapter",
    "StashCommandError",
    "StashFailure",
    "VersionControlError",
]
