"""Curses front end."""

from stashnav.tui.app import run_tui

__all__ = ["run_tui"]
