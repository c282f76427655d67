"""Curses event loop driving a stash controller."""

from __future__ import annotations

import curses
import os
from typing import Any

from stashnav.controller.session import StashController
from stashnav.tui.keys import translate_key
from stashnav.tui.renderer import Renderer
from stashnav.util.logging import get_logger

_LOGGER = get_logger("stashnav.tui.app")


def run_tui(controller: StashController, *, poll_interval_ms: int = 100) -> None:
    """Run the interactive session until the user quits.

    Args:
        controller: Controller owning the session state.
        poll_interval_ms: Input timeout, which is also the length of a tick.
    """

    os.environ.setdefault("ESCDELAY", "25")
    curses.wrapper(_event_loop, controller, poll_interval_ms)


def _event_loop(stdscr: Any, controller: StashController, poll_interval_ms: int) -> None:
    try:
        curses.curs_set(0)
    except curses.error:
        pass
    stdscr.keypad(True)
    stdscr.timeout(poll_interval_ms)
    renderer = Renderer(stdscr)
    drawn_revision = -1
    _LOGGER.info("Interactive session started.")

    while not controller.finished:
        controller.set_viewport(renderer.viewport_height())
        if controller.revision != drawn_revision:
            renderer.draw(controller.view_model())
            drawn_revision = controller.revision

        key = translate_key(_read_key(stdscr))
        if key is not None:
            if key.name == "resize":
                drawn_revision = -1
            else:
                controller.handle_key(key)
        controller.process_results()
        controller.tick()

    _LOGGER.info("Interactive session finished.")


def _read_key(stdscr: Any) -> int | str:
    # get_wch raises instead of returning -1 when the timeout expires.
    try:
        return stdscr.get_wch()
    except curses.error:
        return -1
