"""Curses renderer that paints a view model."""

from __future__ import annotations

import curses
from typing import Any

from stashnav.controller.state import LineStyle, ListRow, StatusLevel, ViewKind, ViewModel

# Lines reserved for the header, title, status and footer rows.
_CHROME_ROWS = 4


class Renderer:
    """Paints :class:`ViewModel` snapshots onto a curses window."""

    def __init__(self, stdscr: Any) -> None:
        self._stdscr = stdscr
        self._styles: dict[str, int] = {}
        self._init_colors()

    def viewport_height(self) -> int:
        """Return the number of preview lines that fit on screen."""

        height, _ = self._stdscr.getmaxyx()
        return max(1, height - _CHROME_ROWS)

    def draw(self, model: ViewModel) -> None:
        """Redraw the whole screen from ``model``."""

        stdscr = self._stdscr
        stdscr.erase()
        height, width = stdscr.getmaxyx()
        if height < _CHROME_ROWS + 1 or width < 10:
            self._put(0, 0, "Terminal too small", width, self._style("warning"))
            stdscr.refresh()
            return

        self._draw_header(model, width)
        if model.kind in {ViewKind.DIFF, ViewKind.FILES}:
            self._draw_preview(model, height, width)
        else:
            self._draw_list(model, height, width)
        self._draw_status(model, height - 2, width)
        self._draw_footer(model, height - 1, width)
        stdscr.refresh()

    def _init_colors(self) -> None:
        self._styles = {
            "title": curses.A_BOLD,
            "selected": curses.A_REVERSE,
            "dim": curses.A_DIM,
        }
        if not curses.has_colors():
            return
        curses.start_color()
        try:
            curses.use_default_colors()
            background = -1
        except curses.error:
            background = curses.COLOR_BLACK
        pairs = {
            "added": curses.COLOR_GREEN,
            "removed": curses.COLOR_RED,
            "hunk": curses.COLOR_CYAN,
            "meta": curses.COLOR_YELLOW,
            "renamed": curses.COLOR_MAGENTA,
            "modified": curses.COLOR_BLUE,
            "success": curses.COLOR_GREEN,
            "warning": curses.COLOR_YELLOW,
            "error": curses.COLOR_RED,
            "info": curses.COLOR_CYAN,
        }
        for number, (name, color) in enumerate(pairs.items(), start=1):
            curses.init_pair(number, color, background)
            self._styles[name] = curses.color_pair(number)
        self._styles["title"] = self._styles["info"] | curses.A_BOLD

    def _style(self, name: str) -> int:
        return self._styles.get(name, curses.A_NORMAL)

    def _line_style(self, style: LineStyle) -> int:
        if style is LineStyle.CONTEXT:
            return curses.A_NORMAL
        if style is LineStyle.PLACEHOLDER:
            return self._style("dim")
        if style is LineStyle.META:
            return self._style("meta") | curses.A_BOLD
        return self._style(style.value)

    def _draw_header(self, model: ViewModel, width: int) -> None:
        branch = model.branch or "(detached)"
        header = f" stashnav  {branch}  {model.total} stash(es)"
        if model.filter_query:
            header = f"{header}  filter: {model.filter_query}"
        self._put(0, 0, header.ljust(width), width, self._style("title") | curses.A_REVERSE)

    def _draw_list(self, model: ViewModel, height: int, width: int) -> None:
        top = 1
        bottom = height - 2
        if model.prompt is not None:
            bottom -= 1
            self._put(bottom, 0, model.prompt, width, curses.A_BOLD)
        if model.dialog is not None:
            bottom -= 1
            self._put(bottom, 0, model.dialog, width, self._style("warning") | curses.A_BOLD)
        rows_available = max(0, bottom - top)
        if not model.rows:
            text = "No stashes match the filter." if model.filter_query else "No stashes."
            self._put(top, 2, text, width, self._style("dim"))
            return
        selected = model.selected or 0
        first = max(0, selected - rows_available + 1)
        for offset, row in enumerate(model.rows[first : first + rows_available]):
            position = first + offset
            attrs = self._style("selected") if position == selected else curses.A_NORMAL
            self._put(top + offset, 0, _format_row(row, width), width, attrs)

    def _draw_preview(self, model: ViewModel, height: int, width: int) -> None:
        title = model.title
        if model.partial:
            title = f"{title}  [partial]"
        self._put(1, 0, title, width, curses.A_BOLD)
        top = 2
        rows_available = max(0, height - _CHROME_ROWS)
        if model.loading:
            self._put(top, 2, "Loading...", width, self._style("dim"))
            return
        visible = model.lines[model.scroll_offset : model.scroll_offset + rows_available]
        for offset, line in enumerate(visible):
            self._put(top + offset, 0, line.text, width, self._line_style(line.style))

    def _draw_status(self, model: ViewModel, row: int, width: int) -> None:
        status = model.status
        if status is None:
            if model.busy is not None:
                self._put(row, 0, f"Running {model.busy}...", width, self._style("info"))
            return
        style = {
            StatusLevel.INFO: "info",
            StatusLevel.SUCCESS: "success",
            StatusLevel.WARNING: "warning",
            StatusLevel.ERROR: "error",
        }[status.level]
        self._put(row, 0, status.text, width, self._style(style))

    def _draw_footer(self, model: ViewModel, row: int, width: int) -> None:
        hints = "  ".join(f"{keys}:{label}" for keys, label in model.hints)
        self._put(row, 0, hints, width, self._style("dim"))

    def _put(self, row: int, column: int, text: str, width: int, attrs: int) -> None:
        limit = width - column - 1
        if limit <= 0:
            return
        try:
            self._stdscr.addnstr(row, column, text.expandtabs(4), limit, attrs)
        except curses.error:
            # Writes that touch the last screen cell raise after drawing.
            pass


def _format_row(row: ListRow, width: int) -> str:
    ref = f"{row.ref:<11}"
    age = f"{row.age:>15}"
    body = f"{row.branch}: {row.message}"
    room = max(0, width - len(ref) - len(age) - 4)
    if len(body) > room:
        body = body[: max(0, room - 1)] + "~"
    return f" {ref} {body.ljust(room)} {age}"
