"""Logical key actions and their configurable bindings."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from stashnav.config import DEFAULT_KEYBINDINGS


class Action(str, Enum):
    """Logical actions understood by the controller."""

    UP = "up"
    DOWN = "down"
    SELECT = "select"
    VIEW_DIFF = "view_diff"
    VIEW_FILES = "view_files"
    APPLY = "apply"
    POP = "pop"
    DROP = "drop"
    NEW_STASH = "new_stash"
    SEARCH = "search"
    BACK = "back"
    QUIT = "quit"
    SCROLL_UP = "scroll_up"
    SCROLL_DOWN = "scroll_down"
    PAGE_UP = "page_up"
    PAGE_DOWN = "page_down"
    CONFIRM = "confirm"
    TOGGLE_UNTRACKED = "toggle_untracked"
    CLEAR_FILTER = "clear_filter"
    REFRESH = "refresh"


@dataclass(frozen=True)
class KeyEvent:
    """A terminal-independent key press.

    Attributes:
        name: Normalized key name (``"enter"``, ``"esc"``, ``"up"``, ``"a"``, ...).
        char: Printable character for text entry, or None for special keys.
    """

    name: str
    char: str | None = None

    @classmethod
    def from_char(cls, char: str) -> KeyEvent:
        """Build an event for a printable character."""

        name = "space" if char == " " else char
        return cls(name=name, char=char)

    @classmethod
    def special(cls, name: str) -> KeyEvent:
        """Build an event for a non-printable key."""

        return cls(name=name)


class Keymap:
    """Maps key names to logical actions.

    A key may carry several actions (``enter`` both selects and opens the diff);
    the controller decides which one applies in the current view.
    """

    def __init__(self, bindings: Mapping[str, list[str]] | None = None) -> None:
        source = bindings if bindings is not None else DEFAULT_KEYBINDINGS
        self._keys: dict[Action, tuple[str, ...]] = {}
        for action in Action:
            keys = source.get(action.value, DEFAULT_KEYBINDINGS[action.value])
            self._keys[action] = tuple(_normalize(key) for key in keys)

    def matches(self, key: KeyEvent, action: Action) -> bool:
        """Return True when ``key`` is bound to ``action``."""

        return _normalize(key.name) in self._keys[action]

    def keys_for(self, action: Action) -> tuple[str, ...]:
        """Return the key names bound to ``action``."""

        return self._keys[action]

    def label(self, action: Action) -> str:
        """Return a short display label for the keys bound to ``action``."""

        return "/".join(self._keys[action][:2])


def _normalize(name: str) -> str:
    # Single characters stay case-sensitive; named keys are case-insensitive.
    return name if len(name) == 1 else name.lower()
