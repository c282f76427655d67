"""Session controller, view state and background worker."""

from stashnav.controller.keys import Action, KeyEvent, Keymap
from stashnav.controller.session import StashController
from stashnav.controller.state import SessionState, ViewKind, ViewModel
from stashnav.controller.worker import AdapterWorker, RequestKind

__all__ = [
    "Action",
    "AdapterWorker",
    "KeyEvent",
    "Keymap",
    "RequestKind",
    "SessionState",
    "StashController",
    "ViewKind",
    "ViewModel",
]
