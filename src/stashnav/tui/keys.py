"""Translation of curses key codes into key events."""

from __future__ import annotations

import curses

from stashnav.controller.keys import KeyEvent

_SPECIAL_CODES: dict[int, str] = {
    10: "enter",
    13: "enter",
    curses.KEY_ENTER: "enter",
    27: "esc",
    9: "tab",
    8: "backspace",
    127: "backspace",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_PPAGE: "pageup",
    curses.KEY_NPAGE: "pagedown",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_DC: "delete",
    curses.KEY_RESIZE: "resize",
}


def translate_key(key: int | str) -> KeyEvent | None:
    """Return the key event for a ``get_wch`` result, or None for no input.

    ``get_wch`` yields a ``str`` for typed characters, which may be any
    Unicode character, and an ``int`` for function keys.
    """

    if isinstance(key, str):
        return _translate_char(key)
    if key < 0:
        return None
    name = _SPECIAL_CODES.get(key)
    if name is not None:
        return KeyEvent.special(name)
    if 32 <= key < 127:
        return KeyEvent.from_char(chr(key))
    return None


def _translate_char(char: str) -> KeyEvent | None:
    if len(char) != 1:
        return None
    # Only control characters share codes with named keys; KEY_* values overlap real text.
    name = _SPECIAL_CODES.get(ord(char)) if ord(char) < 128 else None
    if name is not None:
        return KeyEvent.special(name)
    if char.isprintable():
        return KeyEvent.from_char(char)
    return None
